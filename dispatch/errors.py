"""
Translation errors

Structured error types raised by providers, the retry controller and the
dispatch engine. Classification happens once, where a response is parsed.
"""
from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    VALIDATION = "validation"
    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    SERVER = "server"
    TRANSPORT = "transport"
    PARSE = "parse"
    MODEL_NOT_FOUND = "model_not_found"
    EMPTY_RESPONSE = "empty_response"
    INTERRUPTED = "interrupted"
    UNKNOWN = "unknown"


NON_RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.CONFIGURATION,
        ErrorKind.VALIDATION,
        ErrorKind.AUTH,
        ErrorKind.PARSE,
        ErrorKind.MODEL_NOT_FOUND,
        ErrorKind.INTERRUPTED,
    }
)

NOT_FOUND_ERROR_TYPE = "not_found_error"

# Error "type" strings used by OpenAI- and Anthropic-style APIs, for payloads
# that arrive without an HTTP status.
ERROR_TYPE_STATUS = {
    "invalid_request_error": 400,
    "authentication_error": 401,
    "permission_error": 403,
    NOT_FOUND_ERROR_TYPE: 404,
    "rate_limit_error": 429,
    "api_error": 500,
    "overloaded_error": 503,
}


class TranslationError(RuntimeError):
    """Uniform error surfaced by the dispatch engine."""

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        status: int | None = None,
        error_type: str | None = None,
        provider: str | None = None,
        interrupted: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.status = status
        self.error_type = error_type
        self.provider = provider
        self.interrupted = interrupted

    @property
    def retryable(self) -> bool:
        return self.kind not in NON_RETRYABLE_KINDS

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.message!r}, kind={self.kind.value}, "
            f"status={self.status}, provider={self.provider})"
        )


class ConfigurationError(TranslationError):
    def __init__(self, message: str, *, provider: str | None = None) -> None:
        super().__init__(message, kind=ErrorKind.CONFIGURATION, provider=provider)


class TranslationInterrupted(TranslationError):
    def __init__(self, message: str = "Translation interrupted", *, provider: str | None = None) -> None:
        super().__init__(message, kind=ErrorKind.INTERRUPTED, provider=provider, interrupted=True)


class CatalogError(OSError):
    """Raised when a provider model catalog cannot be fetched."""


def classify_status(
    status: int | None,
    *,
    error_type: str | None = None,
    message: str = "",
    model_fallback: bool = False,
) -> ErrorKind:
    """Map an HTTP status (plus the provider's error type) to an ErrorKind.

    A 404 only means a missing model for providers with model fallback
    (`model_fallback=True`); everywhere else it is an ordinary retryable
    failure, like any other unlisted status.
    """
    if status is None:
        return ErrorKind.UNKNOWN
    if status == 400:
        return ErrorKind.VALIDATION
    if status in (401, 403):
        return ErrorKind.AUTH
    if status == 404 and model_fallback:
        if error_type == NOT_FOUND_ERROR_TYPE or "model" in (message or "").lower():
            return ErrorKind.MODEL_NOT_FOUND
        return ErrorKind.UNKNOWN
    if status == 429:
        return ErrorKind.RATE_LIMIT
    if status in (500, 503):
        return ErrorKind.SERVER
    return ErrorKind.UNKNOWN


def format_api_error(status: int | None, message: str, *, prefix: str = "API Error") -> str:
    """Build the user-facing "<prefix> (<code>): <message>" text."""
    if status == 400:
        return f"{prefix} (400): Invalid request - {message}"
    if status in (401, 403):
        return f"{prefix} (401/403): Invalid API key or access denied"
    if status == 429:
        return f"{prefix} (429): Rate limit exceeded - please slow down or check your quota"
    if status in (500, 503):
        return f"{prefix} ({status}): Server error - Please retry later"
    code = status if status is not None else "unknown"
    return f"{prefix} ({code}): {message}"
