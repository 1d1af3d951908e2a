from __future__ import annotations

import re
import unicodedata
from collections import Counter
from dataclasses import dataclass, field
from typing import List

# printf (%s, %1$s, %d), {{template}}, ICU {0}/{name}, HTML tags, ${var}, $VAR
PLACEHOLDER_PATTERN = re.compile(
    r"(%(?:\d+\$)?[-+# 0,(]*\d*\.?\d*[sdfiboxXeEgGcChHnAt%])"
    r"|(\{\{[^}]*\}\})"
    r"|(\{[^}]*\})"
    r"|(<[^>]+>)"
    r"|(\$\{[^}]+\})"
    r"|(\$[A-Za-z_]\w*)"
)

PREVIEW_LIMIT = 60
QUOTE_PAIRS = {'"': '"', "“": "”", "«": "»", "「": "」"}


@dataclass(slots=True)
class ProtectedText:
    text: str
    placeholders: List[str] = field(default_factory=list)

    @property
    def has_placeholders(self) -> bool:
        return bool(self.placeholders)


def placeholder_token(index: int) -> str:
    return f"__PH{index}__"


def protect_placeholders(text: str) -> ProtectedText:
    """Swap format placeholders for __PH<n>__ tokens the model must not touch."""
    placeholders: List[str] = []

    def _replace(match: re.Match[str]) -> str:
        placeholders.append(match.group(0))
        return placeholder_token(len(placeholders) - 1)

    return ProtectedText(text=PLACEHOLDER_PATTERN.sub(_replace, text), placeholders=placeholders)


def restore_placeholders(text: str, placeholders: List[str]) -> str:
    result = text
    for index, original in enumerate(placeholders):
        result = result.replace(placeholder_token(index), original)
    return result


def missing_placeholders(original: str, translated: str) -> List[str]:
    """Placeholders of `original` that occur fewer times in `translated`."""
    expected = Counter(match.group(0) for match in PLACEHOLDER_PATTERN.finditer(original))
    return [ph for ph, count in expected.items() if translated.count(ph) < count]


def is_non_translatable(text: str) -> bool:
    """True when text holds only punctuation, symbols, digits and whitespace."""
    if not text:
        return True
    for ch in text:
        if ch.isspace() or ch.isdigit():
            continue
        if unicodedata.category(ch)[0] in ("P", "S"):
            continue
        return False
    return True


def strip_enclosing_quotes(text: str) -> str:
    if len(text) >= 2 and QUOTE_PAIRS.get(text[0]) == text[-1]:
        return text[1:-1]
    return text


def flatten_newlines(text: str) -> str:
    return text.replace("\r\n", " ").replace("\n", " ").replace("\r", " ")


def sanitize_preview(text: str | None, *, limit: int = PREVIEW_LIMIT) -> str:
    if not text:
        return ""
    single_line = flatten_newlines(text).strip()
    if len(single_line) <= limit:
        return single_line
    return single_line[: limit - 3] + "..."


@dataclass(slots=True)
class DeduplicationResult:
    unique_texts: List[str]
    groups: List[List[int]]  # Each group contains indexes pointing back to the source list


def deduplicate_texts(texts: List[str]) -> DeduplicationResult:
    unique: List[str] = []
    groups: List[List[int]] = []
    seen: dict[str, int] = {}
    for idx, text in enumerate(texts):
        match_index = seen.get(text)
        if match_index is None:
            seen[text] = len(unique)
            unique.append(text)
            groups.append([idx])
        else:
            groups[match_index].append(idx)
    return DeduplicationResult(unique_texts=unique, groups=groups)
