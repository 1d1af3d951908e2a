"""
OpenAI provider

Chat Completions API with bearer authentication. Any endpoint speaking the
same wire format (proxies, compatible gateways) can be configured.
"""
from __future__ import annotations

from typing import Any, Dict, List

from config import DEFAULT_OPENAI_MODEL, OPENAI_CHAT_ENDPOINT, OPENAI_MODELS_ENDPOINT

from .base import DEFAULT_TEMPERATURE, BaseProvider, ModelInfo, ProviderConfig, ProviderKind, TranslationRequest
from .prompt import build_system_prompt
from .transport import ProviderRequest


def extract_content_text(content: Any) -> str:
    """Flatten a message content that may be a string or a list of blocks."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        pieces = []
        for item in content:
            if isinstance(item, dict) and "text" in item:
                pieces.append(str(item.get("text") or ""))
            elif isinstance(item, str):
                pieces.append(item)
        return "".join(pieces).strip()
    return str(content).strip()


class OpenAIProvider(BaseProvider):
    kind = ProviderKind.OPENAI
    name = "openai"
    error_prefix = "OpenAI API Error"
    key_pattern = r"sk-[A-Za-z0-9_-]{16,}"
    default_model = DEFAULT_OPENAI_MODEL
    default_endpoint = OPENAI_CHAT_ENDPOINT
    max_output_tokens = 2048

    def build_request(self, prompt: str, request: TranslationRequest, config: ProviderConfig) -> ProviderRequest:
        body = {
            "model": config.model,
            "messages": [
                {
                    "role": "system",
                    "content": build_system_prompt(request.source_lang, request.target_lang, request.context_directive),
                },
                {"role": "user", "content": prompt},
            ],
            "temperature": DEFAULT_TEMPERATURE,
            "max_tokens": self.max_output_tokens,
        }
        return ProviderRequest(
            method="POST",
            url=config.endpoint or self.default_endpoint,
            headers={"Authorization": f"Bearer {config.api_key}"},
            body=body,
        )

    def extract_text(self, payload: Dict[str, Any]) -> str:
        choices = payload.get("choices") or []
        if not choices:
            raise self.empty_error("OpenAI response did not include choices")
        message = choices[0].get("message")
        if not isinstance(message, dict):
            raise self.empty_error("OpenAI response missing message payload")
        return extract_content_text(message.get("content"))

    # -- model catalog ---------------------------------------------------

    def models_request(self, api_key: str) -> ProviderRequest:
        return ProviderRequest(
            method="GET",
            url=OPENAI_MODELS_ENDPOINT,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    def model_entries(self, payload: Dict[str, Any]) -> List[ModelInfo]:
        models: List[ModelInfo] = []
        for entry in payload.get("data") or []:
            if not isinstance(entry, dict):
                continue
            model_id = entry.get("id", "")
            if not is_chat_model(model_id):
                continue
            models.append(
                ModelInfo(
                    id=model_id,
                    display_name=format_name(model_id),
                    detail=entry.get("owned_by") or "OpenAI",
                    recommended=is_recommended(model_id),
                    priority=priority_for(model_id),
                )
            )
        return models

    def default_models(self) -> List[ModelInfo]:
        return [
            ModelInfo("gpt-4o", "GPT-4o (Recommended)", "OpenAI", True, 90),
            ModelInfo("gpt-4o-mini", "GPT-4o Mini (Fast)", "OpenAI", False, 90),
            ModelInfo("o3-mini", "o3-mini (Reasoning)", "OpenAI", False, 80),
            ModelInfo("o1-mini", "o1-mini (Advanced)", "OpenAI", False, 10),
        ]


def is_chat_model(model_id: str) -> bool:
    if not model_id:
        return False
    lower = model_id.lower()
    if "audio" in lower or "embedding" in lower:
        return False
    return lower.startswith(("gpt-4", "gpt-3.5", "gpt-5", "o3", "o4"))


def is_recommended(model_id: str) -> bool:
    return model_id.startswith("gpt-4.1") or model_id == "gpt-4o"


def priority_for(model_id: str) -> int:
    if model_id.startswith("gpt-4.1-mini"):
        return 120
    if model_id.startswith("gpt-4.1"):
        return 110
    if model_id.startswith("gpt-5"):
        return 100
    if model_id.startswith("gpt-4o"):
        return 90
    if model_id.startswith("o4-mini"):
        return 85
    if model_id.startswith("o3"):
        return 80
    if model_id.startswith("gpt-4-turbo"):
        return 70
    if model_id.startswith("gpt-3.5"):
        return 40
    return 10


def format_name(model_id: str) -> str:
    if not model_id:
        return "OpenAI Model"
    if model_id.startswith("gpt-4.1-mini"):
        return "GPT-4.1 Mini (Recommended)"
    if model_id.startswith("gpt-4.1"):
        return "GPT-4.1"
    if model_id == "gpt-4o":
        return "GPT-4o"
    if model_id.startswith("gpt-4o-mini"):
        return "GPT-4o Mini"
    if model_id.startswith("gpt-5"):
        return "GPT-5"
    if model_id.startswith("o4-mini"):
        return "o4-mini Reasoning"
    if model_id.startswith("o3"):
        return "o3 Reasoning"
    if model_id.startswith("gpt-4-turbo"):
        return "GPT-4 Turbo"
    if model_id.startswith("gpt-3.5"):
        return "GPT-3.5 Turbo"
    return model_id.split("-")[0].upper()
