from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import os


BASE_DIR = Path(__file__).resolve().parent
DEFAULT_PREFERENCES_PATH = BASE_DIR / "storage" / "preferences.json"

# Preference keys
PREF_DEFAULT_ENGINE = "ai_default_engine"
PREF_GEMINI_API_KEY = "gemini_api_key"
PREF_GEMINI_MODEL = "gemini_model_name"
PREF_TIMEOUT = "gemini_request_timeout"
PREF_MAX_RETRIES = "gemini_max_retries"
PREF_ENABLE_DEBUG = "ai_enable_debug_logging"
PREF_OPENAI_API_KEY = "openai_api_key"
PREF_OPENAI_MODEL = "openai_model_name"
PREF_OPENAI_ENDPOINT = "openai_api_endpoint"
PREF_CLAUDE_API_KEY = "claude_api_key"
PREF_CLAUDE_MODEL = "claude_model_name"
PREF_CLAUDE_ENDPOINT = "claude_api_endpoint"
PREF_CONTEXT_APP_NAME = "ai_context_app_name"
PREF_CONTEXT_APP_TYPE = "ai_context_app_type"
PREF_CONTEXT_AUDIENCE = "ai_context_target_audience"
PREF_CONTEXT_TONE = "ai_context_tone"
PREF_CONTEXT_NOTES = "ai_context_custom_notes"
PREF_DEBUG_DISABLE_MODEL_CACHE = "debug_disable_model_cache"

# Per-provider preference keys: api key, model, endpoint, cached catalog
PROVIDER_PREF_KEYS = {
    "gemini": (PREF_GEMINI_API_KEY, PREF_GEMINI_MODEL, None, "cache_gemini_models"),
    "openai": (PREF_OPENAI_API_KEY, PREF_OPENAI_MODEL, PREF_OPENAI_ENDPOINT, "cache_openai_models"),
    "claude": (PREF_CLAUDE_API_KEY, PREF_CLAUDE_MODEL, PREF_CLAUDE_ENDPOINT, "cache_claude_models"),
}

MODEL_CACHE_TTL = 6 * 60 * 60  # seconds

GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"
OPENAI_CHAT_ENDPOINT = "https://api.openai.com/v1/chat/completions"
OPENAI_MODELS_ENDPOINT = "https://api.openai.com/v1/models"
CLAUDE_MESSAGES_ENDPOINT = "https://api.anthropic.com/v1/messages"
CLAUDE_MODELS_ENDPOINT = "https://api.anthropic.com/v1/models"
CLAUDE_API_VERSION = "2023-06-01"

DEFAULT_ENGINE = "gemini"
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"
DEFAULT_OPENAI_MODEL = "gpt-4o"
DEFAULT_CLAUDE_MODEL = "claude-3-5-sonnet-20241022"
CLAUDE_MODEL_FALLBACK = "claude-3-sonnet-20240229"
DEFAULT_CONTEXT_TONE = "Clear and instructional"


def cache_key_for(provider: str) -> str:
    return PROVIDER_PREF_KEYS[provider][3]


def cache_bypass_key_for(provider: str) -> str:
    return f"{provider}_disable_model_cache"


@dataclass(slots=True)
class RetryPolicy:
    max_retries: int = 2
    backoff_base: float = 2.0

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the zero-based `attempt` failed."""
        return float(self.backoff_base ** attempt)


@dataclass(slots=True)
class TranslatorSettings:
    batch_char_limit: int = 10000
    batch_size: int = 25
    timeout_ms: int = 30000
    max_retries: int = 2
    proxy_url: str | None = field(default_factory=lambda: os.getenv("AIHUB_PROXY"))


@dataclass(slots=True)
class EngineSecrets:
    gemini_api_key: str | None = field(default_factory=lambda: os.getenv("GEMINI_API_KEY"))
    openai_api_key: str | None = field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    claude_api_key: str | None = field(default_factory=lambda: os.getenv("ANTHROPIC_API_KEY"))

    def for_provider(self, provider: str) -> str:
        return (getattr(self, f"{provider}_api_key", None) or "").strip()


@dataclass(slots=True)
class AppSettings:
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    translator: TranslatorSettings = field(default_factory=TranslatorSettings)
    secrets: EngineSecrets = field(default_factory=EngineSecrets)
    preferences_path: Path = field(default_factory=lambda: Path(os.getenv("AIHUB_PREFERENCES", DEFAULT_PREFERENCES_PATH)))
    log_file: Path | None = field(default_factory=lambda: Path(os.environ["AIHUB_LOG_FILE"]) if os.getenv("AIHUB_LOG_FILE") else None)
    default_source_lang: str = field(default_factory=lambda: os.getenv("AIHUB_SOURCE", "auto"))
    default_target_lang: str = field(default_factory=lambda: os.getenv("AIHUB_TARGET", "tr"))


SETTINGS = AppSettings()
