"""
Prompt construction and batch response parsing.
"""
from __future__ import annotations

import re
from typing import List, Sequence, Tuple

from utils.lang import display_name, is_auto
from utils.text import flatten_newlines

APP_CONTEXT = (
    "Context: This content belongs to an Android mobile application UI. "
    "Preserve semantics and ensure wording fits an app interface."
)
BATCH_APP_CONTEXT = (
    "Context: These are Android mobile application UI strings. "
    "Preserve semantics and ensure wording fits an app interface."
)

# [N] text / N. text / N) text
BATCH_PATTERNS = (
    re.compile(r"\[(\d+)]\s*(.*?)(?=\n\s*\[\d+]|\Z)", re.DOTALL),
    re.compile(r"^(\d+)\.\s+(.*?)(?=\n\d+\.|\Z)", re.MULTILINE | re.DOTALL),
    re.compile(r"^(\d+)\)\s*(.*?)(?=\n\d+\)|\Z)", re.MULTILINE | re.DOTALL),
)


def build_user_context_directive(
    *,
    app_name: str = "",
    app_type: str = "",
    audience: str = "",
    tone: str = "",
    notes: str = "",
) -> str:
    parts = []
    if app_name.strip():
        parts.append(f"App: {app_name.strip()}.")
    if app_type.strip():
        parts.append(f"Type: {app_type.strip()}.")
    if audience.strip():
        parts.append(f"Audience: {audience.strip()}.")
    if tone.strip():
        parts.append(f"Tone: {tone.strip()}.")
    if notes.strip():
        parts.append(f"Notes: {notes.strip()}")
    return " ".join(parts)


def _direction(verb: str, source_lang: str, target_lang: str) -> str:
    target = display_name(target_lang)
    if is_auto(source_lang):
        return f"{verb} to {target}."
    return f"{verb} from {display_name(source_lang)} to {target}."


def build_translation_prompt(text: str, source_lang: str, target_lang: str, context_directive: str = "") -> str:
    lines = [_direction("Translate the following text", source_lang, target_lang), APP_CONTEXT]
    if context_directive:
        lines.append(context_directive)
    lines.extend(
        [
            "IMPORTANT: Return ONLY the translated text, without any explanations, notes, or additional formatting.",
            "Keep emojis exactly as they appear.",
            "Tokens like __PH0__, __PH1__ etc. are protected placeholders - keep them EXACTLY as-is, "
            "do not translate, modify, reorder, or remove them.",
            "Translate only the human-readable words around them.",
            "Do not add quotes, prefixes, or suffixes. Just the pure translation.",
            "",
            "Text to translate:",
            text,
        ]
    )
    return "\n".join(lines)


def build_system_prompt(source_lang: str, target_lang: str, context_directive: str = "") -> str:
    prompt = (
        "You are a professional translation engine working on Android application strings. "
        f"Translate from {display_name(source_lang)} to {display_name(target_lang)}. "
        "ABSOLUTE RULES: "
        "1) Tokens like __PH0__, __PH1__ etc. are protected placeholders - keep them EXACTLY as-is in the "
        "translation. Do NOT translate, modify, reorder, or remove them. "
        "2) Keep emojis exactly as they appear. "
        "3) Return ONLY the translated text - no quotes, explanations, or commentary. "
        "4) Keep the translation natural and appropriate for a mobile app UI."
    )
    if context_directive:
        prompt += f" Additional context: {context_directive}"
    return prompt


def build_batch_prompt(texts: Sequence[str], source_lang: str, target_lang: str, context_directive: str = "") -> str:
    lines = [_direction("Translate each of the following numbered texts", source_lang, target_lang), BATCH_APP_CONTEXT]
    if context_directive:
        lines.append(context_directive)
    lines.extend(
        [
            "ABSOLUTE RULES:",
            "- Return ONLY the translations in the EXACT same numbered format: [N] translated text",
            f"- You MUST translate ALL {len(texts)} items. Do not skip, merge, or reorder any.",
            "- Each translation MUST be on its own line starting with [N] where N is the item number.",
            "- Tokens like __PH0__, __PH1__ etc. are protected placeholders - keep them EXACTLY as-is.",
            "- Do NOT translate, modify, reorder, or remove __PH*__ tokens.",
            "- Keep emojis exactly as they appear.",
            "- Do not add quotes, explanations, notes, or any extra text.",
            "",
        ]
    )
    for index, text in enumerate(texts, start=1):
        lines.append(f"[{index}] {flatten_newlines(text or '')}")
    return "\n".join(lines) + "\n"


def _strip_code_fence(response: str) -> str:
    cleaned = response.strip()
    if cleaned.startswith("```"):
        first_newline = cleaned.find("\n")
        last_fence = cleaned.rfind("```")
        if 0 < first_newline < last_fence:
            cleaned = cleaned[first_newline + 1:last_fence].strip()
    return cleaned


def _match_entries(pattern: re.Pattern[str], text: str, count: int) -> Tuple[List[str | None], int]:
    results: List[str | None] = [None] * count
    found = 0
    for match in pattern.finditer(text):
        index = int(match.group(1)) - 1
        value = match.group(2).strip()
        if 0 <= index < count and value:
            if results[index] is None:
                found += 1
            results[index] = value
    return results, found


def parse_batch_response(response: str, originals: Sequence[str]) -> Tuple[List[str], int]:
    """Split a numbered batch reply back into items.

    Returns the translations (originals fill any gaps) and how many items
    were actually found in the reply.
    """
    count = len(originals)
    cleaned = _strip_code_fence(response or "")
    best: List[str | None] = [None] * count
    best_found = 0
    for pattern in BATCH_PATTERNS:
        candidate, found = _match_entries(pattern, cleaned, count)
        if found > best_found:
            best, best_found = candidate, found
        if best_found == count:
            break
    return [value if value else original for value, original in zip(best, originals)], best_found
