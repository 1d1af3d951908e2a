"""
Provider Factory

Maps engine identifiers to provider implementations and assembles each
provider's configuration from preferences.
Supports: Gemini, OpenAI, Claude
"""
from __future__ import annotations

from typing import Dict

from config import (
    PREF_MAX_RETRIES,
    PREF_TIMEOUT,
    PROVIDER_PREF_KEYS,
    SETTINGS,
    AppSettings,
)
from utils.store import PreferenceStore

from .base import BaseProvider, ProviderConfig, ProviderKind
from .claude import ClaudeProvider
from .gemini import GeminiProvider
from .openai import OpenAIProvider


# Available translation engines
AVAILABLE_ENGINES = {
    ProviderKind.GEMINI.value: "Google Gemini",
    ProviderKind.OPENAI.value: "OpenAI",
    ProviderKind.CLAUDE.value: "Anthropic Claude",
}

_PROVIDERS: Dict[ProviderKind, BaseProvider] = {
    ProviderKind.GEMINI: GeminiProvider(),
    ProviderKind.OPENAI: OpenAIProvider(),
    ProviderKind.CLAUDE: ClaudeProvider(),
}


def get_available_engines() -> dict[str, str]:
    """Get available translation engines with display names."""
    return AVAILABLE_ENGINES.copy()


def get_provider(kind: ProviderKind | str) -> BaseProvider:
    """Provider implementation for an engine; unknown names resolve to Gemini."""
    if not isinstance(kind, ProviderKind):
        kind = ProviderKind.parse(kind)
    return _PROVIDERS[kind]


def build_provider_config(
    store: PreferenceStore,
    kind: ProviderKind,
    *,
    settings: AppSettings | None = None,
) -> ProviderConfig:
    """Read one provider's configuration.

    Args:
        store: Preference store holding keys, models and endpoints
        kind: Provider to configure
        settings: Application settings (env secrets supply missing keys)

    Returns:
        ProviderConfig; api_key may be empty, callers decide what that means
    """
    settings = settings or SETTINGS
    provider = get_provider(kind)
    key_pref, model_pref, endpoint_pref, _ = PROVIDER_PREF_KEYS[kind.value]

    api_key = store.get_str(key_pref).strip() or settings.secrets.for_provider(kind.value)
    model = store.get_str(model_pref).strip() or provider.default_model
    endpoint = provider.default_endpoint
    if endpoint_pref:
        endpoint = store.get_str(endpoint_pref).strip() or endpoint

    timeout_ms = store.get_int(PREF_TIMEOUT, settings.translator.timeout_ms)
    max_retries = store.get_int(PREF_MAX_RETRIES, settings.translator.max_retries)

    return ProviderConfig(
        kind=kind,
        endpoint=endpoint,
        model=model,
        api_key=api_key,
        timeout=max(timeout_ms, 1000) / 1000.0,
        max_retries=max(max_retries, 0),
    )
