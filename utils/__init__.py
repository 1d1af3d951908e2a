from .batching import chunk_by_char_limit
from .cache import CacheDiagnostics, ModelCache
from .debug_log import DebugSpan, TranslationDebugLogger
from .store import PreferenceStore
from .text import deduplicate_texts, protect_placeholders, restore_placeholders, sanitize_preview

__all__ = [
    "CacheDiagnostics",
    "DebugSpan",
    "ModelCache",
    "PreferenceStore",
    "TranslationDebugLogger",
    "chunk_by_char_limit",
    "deduplicate_texts",
    "protect_placeholders",
    "restore_placeholders",
    "sanitize_preview",
]
