"""
Unit tests for dispatch.errors: status classification and message formatting.
"""

import pytest

from dispatch.errors import (
    ConfigurationError,
    ErrorKind,
    TranslationError,
    TranslationInterrupted,
    classify_status,
    format_api_error,
)


class TestClassifyStatus:
    @pytest.mark.parametrize(
        "status, expected",
        [
            (400, ErrorKind.VALIDATION),
            (401, ErrorKind.AUTH),
            (403, ErrorKind.AUTH),
            (429, ErrorKind.RATE_LIMIT),
            (500, ErrorKind.SERVER),
            (503, ErrorKind.SERVER),
            (502, ErrorKind.UNKNOWN),
            (None, ErrorKind.UNKNOWN),
        ],
    )
    def test_status_mapping(self, status, expected):
        assert classify_status(status) is expected

    def test_not_found_error_type_is_model_not_found(self):
        kind = classify_status(404, error_type="not_found_error", model_fallback=True)
        assert kind is ErrorKind.MODEL_NOT_FOUND

    def test_not_found_mentioning_model_is_model_not_found(self):
        kind = classify_status(404, message="model: claude-9 does not exist", model_fallback=True)
        assert kind is ErrorKind.MODEL_NOT_FOUND

    def test_plain_not_found_is_unknown(self):
        assert classify_status(404, message="no such route", model_fallback=True) is ErrorKind.UNKNOWN

    @pytest.mark.parametrize(
        "error_type, message",
        [
            ("NOT_FOUND", "models/gemini-9 is not found"),
            ("invalid_request_error", "The model `gpt-9` does not exist"),
            ("not_found_error", "model: claude-9"),
        ],
    )
    def test_not_found_without_model_fallback_is_retryable(self, error_type, message):
        kind = classify_status(404, error_type=error_type, message=message)
        assert kind is ErrorKind.UNKNOWN
        assert TranslationError(message, kind=kind).retryable


class TestFormatApiError:
    def test_invalid_request(self):
        assert format_api_error(400, "bad field", prefix="Gemini API Error") == (
            "Gemini API Error (400): Invalid request - bad field"
        )

    def test_auth_hides_provider_message(self):
        text = format_api_error(403, "key sk-123 revoked", prefix="OpenAI API Error")
        assert text == "OpenAI API Error (401/403): Invalid API key or access denied"

    def test_rate_limit(self):
        assert "(429): Rate limit exceeded" in format_api_error(429, "slow down")

    def test_server_error_keeps_code(self):
        assert format_api_error(503, "overloaded") == "API Error (503): Server error - Please retry later"

    def test_other_codes_pass_message_through(self):
        assert format_api_error(418, "teapot", prefix="Claude API Error") == "Claude API Error (418): teapot"


class TestTranslationError:
    def test_retryable_follows_kind(self):
        assert TranslationError("boom", kind=ErrorKind.SERVER).retryable
        assert TranslationError("empty", kind=ErrorKind.EMPTY_RESPONSE).retryable
        assert not TranslationError("nope", kind=ErrorKind.AUTH).retryable
        assert not TranslationError("gone", kind=ErrorKind.MODEL_NOT_FOUND).retryable

    def test_configuration_error_is_fatal(self):
        error = ConfigurationError("API key not configured", provider="gemini")
        assert error.kind is ErrorKind.CONFIGURATION
        assert not error.retryable
        assert error.provider == "gemini"

    def test_interrupted_flag(self):
        error = TranslationInterrupted()
        assert error.interrupted
        assert error.kind is ErrorKind.INTERRUPTED
        assert not error.retryable
