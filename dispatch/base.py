from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List

from utils.text import strip_enclosing_quotes

from .errors import ERROR_TYPE_STATUS, ErrorKind, TranslationError, classify_status, format_api_error
from .transport import HttpResponse, HttpTransport, ProviderRequest

DEFAULT_TEMPERATURE = 0.1


class ProviderKind(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"
    CLAUDE = "claude"

    @classmethod
    def parse(cls, value: str | None) -> "ProviderKind":
        """Resolve an engine identifier, defaulting to Gemini for unknown values."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return cls.GEMINI

    @property
    def supports_model_fallback(self) -> bool:
        return self is ProviderKind.CLAUDE


@dataclass(frozen=True, slots=True)
class TranslationRequest:
    text: str
    source_lang: str
    target_lang: str
    context_directive: str = ""


@dataclass(frozen=True, slots=True)
class ProviderConfig:
    kind: ProviderKind
    endpoint: str
    model: str
    api_key: str
    timeout: float = 30.0
    max_retries: int = 2

    def __repr__(self) -> str:
        # never echo the key
        return (
            f"ProviderConfig(kind={self.kind.value}, endpoint={self.endpoint!r}, "
            f"model={self.model!r}, timeout={self.timeout}, max_retries={self.max_retries})"
        )


@dataclass(frozen=True, slots=True)
class ModelInfo:
    id: str
    display_name: str
    detail: str = ""
    recommended: bool = False
    priority: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.display_name,
            "detail": self.detail,
            "recommended": self.recommended,
            "priority": self.priority,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ModelInfo":
        return cls(
            id=str(data.get("id", "")),
            display_name=str(data.get("name", "")),
            detail=str(data.get("detail", "")),
            recommended=bool(data.get("recommended", False)),
            priority=_as_int(data.get("priority", 0)),
        )


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


class BaseProvider(ABC):
    """One AI backend: request building, response parsing and catalog rules."""

    kind: ProviderKind
    name: str = "base"
    error_prefix: str = "API Error"
    key_pattern: str | None = None
    default_model: str = ""
    default_endpoint: str = ""
    max_output_tokens: int = 2048

    def __init__(self) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)

    # -- translation -----------------------------------------------------

    @abstractmethod
    def build_request(self, prompt: str, request: TranslationRequest, config: ProviderConfig) -> ProviderRequest:
        """Turn a prompt into the provider's HTTP request."""

    @abstractmethod
    def extract_text(self, payload: Dict[str, Any]) -> str:
        """Pull the raw translated text out of a success payload."""

    def parse_response(self, payload: Any) -> str:
        if not isinstance(payload, dict):
            raise TranslationError(
                f"Failed to parse {self.name} response: expected a JSON object",
                kind=ErrorKind.PARSE,
                provider=self.name,
            )
        if "error" in payload:
            raise self.parse_error(None, payload)
        try:
            text = self.extract_text(payload)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise TranslationError(
                f"Failed to parse {self.name} response: {e!r}",
                kind=ErrorKind.PARSE,
                provider=self.name,
            ) from e
        translation = strip_enclosing_quotes((text or "").strip())
        if not translation:
            raise self.empty_error(f"{self.name} response was empty")
        return translation

    def parse_error(self, status: int | None, payload: Any, raw: str = "") -> TranslationError:
        message = raw.strip()[:200] or "Unknown error"
        error_type = None
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, dict):
            message = str(error.get("message") or message)
            error_type = error.get("type") or error.get("status")
            code = error.get("code")
            if status is None and isinstance(code, int):
                status = code
            if status is None and isinstance(error_type, str):
                status = ERROR_TYPE_STATUS.get(error_type)
        elif isinstance(error, str):
            message = error

        kind = classify_status(
            status,
            error_type=error_type,
            message=message,
            model_fallback=self.kind.supports_model_fallback,
        )
        return TranslationError(
            format_api_error(status, message, prefix=self.error_prefix),
            kind=kind,
            status=status,
            error_type=error_type,
            provider=self.name,
        )

    def empty_error(self, message: str) -> TranslationError:
        return TranslationError(message, kind=ErrorKind.EMPTY_RESPONSE, provider=self.name)

    async def translate(
        self,
        transport: HttpTransport,
        prompt: str,
        request: TranslationRequest,
        config: ProviderConfig,
    ) -> str:
        http_request = self.build_request(prompt, request, config)
        response = await transport.send(http_request, timeout=config.timeout)
        payload = self.decode(response)
        translation = self.parse_response(payload)
        self.logger.debug(f"{self.name} response parsed, chars={len(translation)}")
        return translation

    def decode(self, response: HttpResponse) -> Any:
        """Decode a response body, raising structured errors for failures."""
        try:
            payload = response.json()
        except (ValueError, UnicodeDecodeError) as e:
            if not response.ok:
                raise self.parse_error(response.status, None, raw=response.text()) from e
            raise TranslationError(
                f"Failed to parse {self.name} response: {e}",
                kind=ErrorKind.PARSE,
                provider=self.name,
            ) from e
        if not response.ok:
            raise self.parse_error(response.status, payload, raw=response.text())
        return payload

    def key_looks_valid(self, api_key: str) -> bool:
        if not self.key_pattern:
            return True
        return re.fullmatch(self.key_pattern, api_key or "") is not None

    # -- model catalog ---------------------------------------------------

    @abstractmethod
    def models_request(self, api_key: str) -> ProviderRequest:
        """Read-only request listing the provider's models."""

    @abstractmethod
    def model_entries(self, payload: Dict[str, Any]) -> List[ModelInfo]:
        """Filter and rank the raw catalog payload."""

    @abstractmethod
    def default_models(self) -> List[ModelInfo]:
        """Hard-coded catalog used when nothing is cached."""

    @property
    def requires_key_for_catalog(self) -> bool:
        return True
