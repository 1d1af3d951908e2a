"""
Model catalog

Fetches each provider's model list, ranks it, and caches the ranked list in
the preference store with a time-to-live.
"""
from __future__ import annotations

from typing import Dict, List, Sequence

from loguru import logger

from config import MODEL_CACHE_TTL, PREF_DEBUG_DISABLE_MODEL_CACHE, cache_bypass_key_for, cache_key_for
from utils.cache import CacheDiagnostics, ModelCache
from utils.store import PreferenceStore

from .base import ModelInfo, ProviderKind
from .errors import CatalogError, TranslationError
from .factory import get_provider
from .transport import HttpTransport

CATALOG_TIMEOUT = 30.0


def sort_models(models: Sequence[ModelInfo]) -> List[ModelInfo]:
    """Highest priority first, then by display name (id breaks remaining ties)."""
    return sorted(models, key=lambda m: (-m.priority, m.display_name, m.id))


def select_best_model(models: Sequence[ModelInfo], fallback_default: str) -> str:
    if not models:
        return fallback_default
    for info in models:
        if info.recommended:
            return info.id
    return max(models, key=lambda m: m.priority).id


class ModelCatalogManager:
    def __init__(
        self,
        transport: HttpTransport,
        store: PreferenceStore,
        *,
        cache: ModelCache | None = None,
        timeout: float = CATALOG_TIMEOUT,
    ) -> None:
        self.transport = transport
        self.store = store
        self.cache = cache or ModelCache(store, ttl=MODEL_CACHE_TTL)
        self.timeout = timeout

    async def fetch_models(self, kind: ProviderKind, api_key: str) -> List[ModelInfo]:
        provider = get_provider(kind)
        api_key = (api_key or "").strip()
        if provider.requires_key_for_catalog and not api_key:
            raise CatalogError(f"{provider.name} API key required to fetch models")

        try:
            response = await self.transport.send(provider.models_request(api_key), timeout=self.timeout)
            payload = provider.decode(response)
        except TranslationError as e:
            raise CatalogError(f"Failed to fetch {provider.name} models: {e.message}") from e
        if not isinstance(payload, dict):
            raise CatalogError(f"Unexpected {provider.name} models payload")

        models = sort_models(provider.model_entries(payload))
        logger.debug(f"Fetched {len(models)} {provider.name} models")
        return models

    async def refresh_models(self, kind: ProviderKind, api_key: str) -> List[ModelInfo]:
        models = await self.fetch_models(kind, api_key)
        self.save_cache(kind, models)
        return models

    # -- cache -----------------------------------------------------------

    def cache_bypassed(self, kind: ProviderKind) -> bool:
        return self.store.get_bool(PREF_DEBUG_DISABLE_MODEL_CACHE) or self.store.get_bool(
            cache_bypass_key_for(kind.value)
        )

    def save_cache(self, kind: ProviderKind, models: Sequence[ModelInfo]) -> None:
        self.cache.save(cache_key_for(kind.value), [info.to_dict() for info in models])

    def load_cache(self, kind: ProviderKind, ttl: float = MODEL_CACHE_TTL) -> List[ModelInfo]:
        if self.cache_bypassed(kind):
            return []
        entries = self.cache.load(cache_key_for(kind.value), ttl)
        return [ModelInfo.from_dict(entry) for entry in entries]

    def inspect_cache(self, kind: ProviderKind) -> CacheDiagnostics:
        return self.cache.inspect(cache_key_for(kind.value))

    def clear_cache(self, kind: ProviderKind | None = None) -> None:
        kinds = [kind] if kind is not None else list(ProviderKind)
        for item in kinds:
            self.cache.clear(cache_key_for(item.value))

    def available_models(self, kind: ProviderKind) -> List[ModelInfo]:
        """Cached catalog when fresh, otherwise the built-in defaults."""
        cached = self.load_cache(kind)
        if cached:
            return cached
        return sort_models(get_provider(kind).default_models())

    def label_map(self, kind: ProviderKind) -> Dict[str, str]:
        return {info.id: info.display_name for info in self.available_models(kind)}