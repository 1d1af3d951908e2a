"""
Claude provider

Anthropic Messages API. A "not_found_error" on this provider drives the
automatic model fallback in ModelFallbackSwitcher.
"""
from __future__ import annotations

from typing import Any, Dict, List

from config import CLAUDE_API_VERSION, CLAUDE_MESSAGES_ENDPOINT, CLAUDE_MODELS_ENDPOINT, DEFAULT_CLAUDE_MODEL

from .base import DEFAULT_TEMPERATURE, BaseProvider, ModelInfo, ProviderConfig, ProviderKind, TranslationRequest
from .prompt import build_system_prompt
from .transport import ProviderRequest


class ClaudeProvider(BaseProvider):
    kind = ProviderKind.CLAUDE
    name = "claude"
    error_prefix = "Claude API Error"
    key_pattern = r"sk-ant-[A-Za-z0-9_-]{16,}"
    default_model = DEFAULT_CLAUDE_MODEL
    default_endpoint = CLAUDE_MESSAGES_ENDPOINT
    max_output_tokens = 1024

    @staticmethod
    def auth_headers(api_key: str) -> Dict[str, str]:
        return {"x-api-key": api_key, "anthropic-version": CLAUDE_API_VERSION}

    def build_request(self, prompt: str, request: TranslationRequest, config: ProviderConfig) -> ProviderRequest:
        body = {
            "model": config.model,
            "max_tokens": self.max_output_tokens,
            "temperature": DEFAULT_TEMPERATURE,
            "system": build_system_prompt(request.source_lang, request.target_lang, request.context_directive),
            "messages": [
                {"role": "user", "content": [{"type": "text", "text": prompt}]},
            ],
        }
        return ProviderRequest(
            method="POST",
            url=config.endpoint or self.default_endpoint,
            headers=self.auth_headers(config.api_key),
            body=body,
        )

    def extract_text(self, payload: Dict[str, Any]) -> str:
        blocks = payload.get("content") or []
        if not blocks:
            raise self.empty_error("Claude response did not include content")
        return "".join(
            str(block.get("text") or "") for block in blocks if isinstance(block, dict) and "text" in block
        )

    # -- model catalog ---------------------------------------------------

    def models_request(self, api_key: str) -> ProviderRequest:
        return ProviderRequest(method="GET", url=CLAUDE_MODELS_ENDPOINT, headers=self.auth_headers(api_key))

    def model_entries(self, payload: Dict[str, Any]) -> List[ModelInfo]:
        models: List[ModelInfo] = []
        for entry in payload.get("data") or []:
            if not isinstance(entry, dict):
                continue
            model_id = entry.get("id", "")
            if not model_id.startswith("claude"):
                continue
            models.append(
                ModelInfo(
                    id=model_id,
                    display_name=format_name(model_id),
                    detail=entry.get("display_name") or "Anthropic Claude",
                    recommended=is_recommended(model_id),
                    priority=priority_for(model_id),
                )
            )
        return models

    def default_models(self) -> List[ModelInfo]:
        return [
            ModelInfo("claude-sonnet-4-5-20250514", "Claude Sonnet 4.5 (Latest, Recommended)", "Anthropic Claude", True, 130),
            ModelInfo("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet", "Anthropic Claude", False, 90),
            ModelInfo("claude-3-5-haiku-20241022", "Claude 3.5 Haiku (Faster)", "Anthropic Claude", False, 80),
            ModelInfo("claude-3-opus-20240229", "Claude 3 Opus (Highest Quality)", "Anthropic Claude", False, 70),
        ]


def is_recommended(model_id: str) -> bool:
    return "sonnet-4" in model_id or "haiku-4" in model_id


def priority_for(model_id: str) -> int:
    if "sonnet-4-5" in model_id:
        return 130
    if "haiku-4-5" in model_id:
        return 120
    if "opus-4" in model_id:
        return 110
    if "sonnet-4" in model_id:
        return 100
    if model_id.startswith("claude-3-5-sonnet"):
        return 90
    if model_id.startswith("claude-3-5-haiku"):
        return 80
    if model_id.startswith("claude-3-opus"):
        return 70
    if model_id.startswith("claude-3-sonnet"):
        return 60
    if model_id.startswith("claude-3-haiku"):
        return 50
    return 10


def format_name(model_id: str) -> str:
    if not model_id:
        return "Claude Model"
    if "sonnet-4-5" in model_id:
        return "Claude Sonnet 4.5 (Recommended)"
    if "haiku-4-5" in model_id:
        return "Claude Haiku 4.5"
    if "opus-4" in model_id:
        return "Claude Opus 4"
    if "sonnet-4" in model_id:
        return "Claude Sonnet 4"
    if model_id.startswith("claude-3-5-sonnet"):
        return "Claude 3.5 Sonnet"
    if model_id.startswith("claude-3-5-haiku"):
        return "Claude 3.5 Haiku"
    if model_id.startswith("claude-3-opus"):
        return "Claude 3 Opus"
    if model_id.startswith("claude-3-sonnet"):
        return "Claude 3 Sonnet"
    if model_id.startswith("claude-3-haiku"):
        return "Claude 3 Haiku"
    return model_id
