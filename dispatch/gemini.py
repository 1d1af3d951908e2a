"""
Gemini provider

Google Gemini generateContent API. The key travels as a query parameter.
"""
from __future__ import annotations

import urllib.parse
from typing import Any, Dict, List

from config import DEFAULT_GEMINI_MODEL, GEMINI_API_BASE_URL

from .base import DEFAULT_TEMPERATURE, BaseProvider, ModelInfo, ProviderConfig, ProviderKind, TranslationRequest
from .transport import ProviderRequest


class GeminiProvider(BaseProvider):
    kind = ProviderKind.GEMINI
    name = "gemini"
    error_prefix = "Gemini API Error"
    key_pattern = r"AIzaSy[A-Za-z0-9_-]{33}"
    default_model = DEFAULT_GEMINI_MODEL
    default_endpoint = GEMINI_API_BASE_URL
    max_output_tokens = 2048

    def build_request(self, prompt: str, request: TranslationRequest, config: ProviderConfig) -> ProviderRequest:
        endpoint = (config.endpoint or self.default_endpoint).rstrip("/")
        url = f"{endpoint}/{config.model}:generateContent?key={urllib.parse.quote(config.api_key, safe='')}"
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": DEFAULT_TEMPERATURE,
                "maxOutputTokens": self.max_output_tokens,
                "topP": 0.8,
                "topK": 10,
            },
        }
        return ProviderRequest(method="POST", url=url, body=body)

    def extract_text(self, payload: Dict[str, Any]) -> str:
        candidates = payload.get("candidates") or []
        if not candidates:
            raise self.empty_error("No translation returned from API")
        parts = candidates[0]["content"].get("parts") or []
        if not parts:
            raise self.empty_error("Empty translation response")
        # thinking models may emit reasoning parts flagged with "thought"
        return "".join(part.get("text", "") for part in parts if not part.get("thought"))

    # -- model catalog ---------------------------------------------------

    @property
    def requires_key_for_catalog(self) -> bool:
        return False

    def models_request(self, api_key: str) -> ProviderRequest:
        url = GEMINI_API_BASE_URL
        if api_key:
            url = f"{url}?key={urllib.parse.quote(api_key, safe='')}"
        return ProviderRequest(method="GET", url=url)

    def model_entries(self, payload: Dict[str, Any]) -> List[ModelInfo]:
        rows = payload.get("models")
        if rows is None:
            # some responses nest under "data"
            rows = payload.get("data")
        models: List[ModelInfo] = []
        for entry in rows or []:
            if not isinstance(entry, dict):
                continue
            model_id = normalize_model_id(entry.get("name", ""))
            if not is_eligible(model_id):
                continue
            models.append(
                ModelInfo(
                    id=model_id,
                    display_name=entry.get("displayName") or format_name(model_id),
                    detail=entry.get("description") or "Google Gemini",
                    recommended=is_recommended(model_id),
                    priority=priority_for(model_id),
                )
            )
        return models

    def default_models(self) -> List[ModelInfo]:
        return [
            ModelInfo("gemini-2.5-flash", "Gemini 2.5 Flash (Recommended)", "Google Gemini", True, 130),
            ModelInfo("gemini-2.5-flash-lite", "Gemini 2.5 Flash Lite (Fastest)", "Google Gemini", False, 120),
            ModelInfo("gemini-2.5-pro", "Gemini 2.5 Pro (Highest Quality)", "Google Gemini", False, 110),
            ModelInfo("gemini-2.0-flash", "Gemini 2.0 Flash (Legacy)", "Google Gemini", False, 80),
        ]


def normalize_model_id(name: str) -> str:
    return name[len("models/"):] if name.startswith("models/") else name


def is_eligible(model_id: str) -> bool:
    lower = model_id.lower()
    if not lower.startswith("gemini") or "-exp" in lower:
        return False
    return "flash" in lower or "pro" in lower


def is_recommended(model_id: str) -> bool:
    return "2.5-flash" in model_id and "lite" not in model_id


def priority_for(model_id: str) -> int:
    if "2.5-flash" in model_id and "lite" not in model_id:
        return 130
    if "2.5-flash-lite" in model_id:
        return 120
    if "2.5-pro" in model_id:
        return 110
    if "3" in model_id and "flash" in model_id:
        return 105
    if "3" in model_id and "pro" in model_id:
        return 100
    if "2.0-flash" in model_id:
        return 80
    return 10


def format_name(model_id: str) -> str:
    if not model_id:
        return "Gemini Model"
    return model_id.replace("-", " ").upper()
