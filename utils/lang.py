from __future__ import annotations

AUTO = "auto"

LANGUAGE_NAMES = {
    "en": "English",
    "tr": "Turkish",
    "de": "German",
    "fr": "French",
    "es": "Spanish",
    "it": "Italian",
    "pt": "Portuguese",
    "ru": "Russian",
    "ja": "Japanese",
    "ko": "Korean",
    "zh-CN": "Chinese (Simplified)",
    "zh-TW": "Chinese (Traditional)",
    "ar": "Arabic",
    "hi": "Hindi",
    "nl": "Dutch",
    "sv": "Swedish",
    "pl": "Polish",
    "uk": "Ukrainian",
    "cs": "Czech",
    "el": "Greek",
    "he": "Hebrew",
    "id": "Indonesian",
    "th": "Thai",
    "vi": "Vietnamese",
    "ro": "Romanian",
    "hu": "Hungarian",
    "da": "Danish",
    "fi": "Finnish",
    "no": "Norwegian",
    "bg": "Bulgarian",
    "hr": "Croatian",
    "sr": "Serbian",
    "sk": "Slovak",
    "sl": "Slovenian",
    "lt": "Lithuanian",
    "lv": "Latvian",
    "et": "Estonian",
}


def is_auto(code: str | None) -> bool:
    return (code or "").strip().lower() == AUTO


def display_name(code: str) -> str:
    """Human readable language name; unknown codes are returned as-is."""
    if is_auto(code):
        return "Auto Detect"
    if code in LANGUAGE_NAMES:
        return LANGUAGE_NAMES[code]
    for known, name in LANGUAGE_NAMES.items():
        if known.lower() == code.lower():
            return name
    return code
