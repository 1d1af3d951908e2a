from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING, Callable

from loguru import logger

from config import CLAUDE_MODEL_FALLBACK, PROVIDER_PREF_KEYS
from utils.store import PreferenceStore

from .catalog import ModelCatalogManager, select_best_model
from .errors import CatalogError, ErrorKind, TranslationError

if TYPE_CHECKING:
    from .engine import DispatchContext


class ModelFallbackSwitcher:
    """Swap a provider's model when the configured one no longer exists.

    Only providers whose errors distinguish "model not found" take part.
    The caller retries the request once after a successful switch.
    """

    def __init__(
        self,
        catalog: ModelCatalogManager,
        store: PreferenceStore,
        *,
        notifier: Callable[[str], None] | None = None,
        fallback_model: str = CLAUDE_MODEL_FALLBACK,
    ) -> None:
        self.catalog = catalog
        self.store = store
        self.notifier = notifier
        self.fallback_model = fallback_model

    @staticmethod
    def applies_to(context: "DispatchContext", error: TranslationError) -> bool:
        return context.config.kind.supports_model_fallback and error.kind is ErrorKind.MODEL_NOT_FOUND

    async def discover_model(self, context: "DispatchContext") -> str:
        config = context.config
        try:
            models = await self.catalog.fetch_models(config.kind, config.api_key)
        except CatalogError as e:
            logger.warning(f"Unable to fetch {config.kind.value} models: {e}")
            return self.fallback_model
        if models:
            self.catalog.save_cache(config.kind, models)
        return select_best_model(models, self.fallback_model)

    async def switch(self, context: "DispatchContext", error: TranslationError) -> bool:
        """Point the context at a replacement model; False when nothing changed."""
        if not self.applies_to(context, error):
            return False

        candidate = await self.discover_model(context)
        if candidate == context.config.model:
            return False

        previous = context.config.model
        model_pref = PROVIDER_PREF_KEYS[context.config.kind.value][1]
        with self.store.lock:
            context.config = replace(context.config, model=candidate)
            self.store.set(model_pref, candidate)

        message = f"{context.provider.name} model {previous} is unavailable; auto-selected {candidate}"
        logger.warning(message)
        context.debug_logger.log_line("⚠️", message)
        if self.notifier:
            self.notifier(message)
        return True
