from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Callable, List, Sequence

from loguru import logger

from config import (
    DEFAULT_CONTEXT_TONE,
    DEFAULT_ENGINE,
    PREF_CONTEXT_APP_NAME,
    PREF_CONTEXT_APP_TYPE,
    PREF_CONTEXT_AUDIENCE,
    PREF_CONTEXT_NOTES,
    PREF_CONTEXT_TONE,
    PREF_DEFAULT_ENGINE,
    PREF_ENABLE_DEBUG,
    SETTINGS,
    AppSettings,
    RetryPolicy,
)
from utils.batching import chunk_by_char_limit
from utils.debug_log import TranslationDebugLogger
from utils.store import PreferenceStore
from utils.text import (
    ProtectedText,
    deduplicate_texts,
    is_non_translatable,
    missing_placeholders,
    protect_placeholders,
    restore_placeholders,
    sanitize_preview,
)

from .base import BaseProvider, ProviderConfig, ProviderKind, TranslationRequest
from .catalog import ModelCatalogManager
from .errors import ConfigurationError, ErrorKind, TranslationError
from .factory import AVAILABLE_ENGINES, build_provider_config, get_provider
from .fallback import ModelFallbackSwitcher
from .prompt import build_batch_prompt, build_translation_prompt, build_user_context_directive, parse_batch_response
from .retry import AttemptInfo, RetryController, Sleep
from .transport import HttpTransport

Notifier = Callable[[str], None]
ProgressCallback = Callable[[int, int], None]

# Batch failures of these kinds would fail item by item too
FATAL_BATCH_KINDS = frozenset({ErrorKind.CONFIGURATION, ErrorKind.AUTH, ErrorKind.INTERRUPTED})


@dataclass(slots=True)
class DispatchContext:
    """Per-session dispatch state, built once from preferences."""

    provider: BaseProvider
    config: ProviderConfig
    context_directive: str = ""
    debug_logger: TranslationDebugLogger = field(default_factory=lambda: TranslationDebugLogger(False))
    fell_back: bool = False

    @property
    def engine(self) -> str:
        return self.provider.name


class DispatchEngine:
    def __init__(
        self,
        store: PreferenceStore,
        transport: HttpTransport,
        *,
        settings: AppSettings | None = None,
        notifier: Notifier | None = None,
        sleep: Sleep = asyncio.sleep,
        catalog: ModelCatalogManager | None = None,
        switcher: ModelFallbackSwitcher | None = None,
    ) -> None:
        self.store = store
        self.transport = transport
        self.settings = settings or SETTINGS
        self.notifier = notifier
        self.sleep = sleep
        self.catalog = catalog or ModelCatalogManager(transport, store)
        self.switcher = switcher or ModelFallbackSwitcher(self.catalog, store, notifier=notifier)
        self._context: DispatchContext | None = None

    # -- session ---------------------------------------------------------

    def _notify(self, message: str) -> None:
        logger.warning(message)
        if self.notifier:
            self.notifier(message)

    def start_session(self, engine: str | None = None) -> DispatchContext:
        """Resolve the active provider and its configuration.

        `engine` overrides the stored default engine for this session only.
        OpenAI and Claude without a key fall back to Gemini for the session;
        Gemini without a key raises ConfigurationError.
        """
        store = self.store
        debug_logger = TranslationDebugLogger(store.get_bool(PREF_ENABLE_DEBUG))
        kind = ProviderKind.parse(engine or store.get_str(PREF_DEFAULT_ENGINE, DEFAULT_ENGINE))
        config = build_provider_config(store, kind, settings=self.settings)
        fell_back = False

        if kind is not ProviderKind.GEMINI and not config.api_key:
            self._notify(
                f"{AVAILABLE_ENGINES[kind.value]} API key is not configured. "
                "Falling back to Gemini for this session."
            )
            kind = ProviderKind.GEMINI
            config = build_provider_config(store, kind, settings=self.settings)
            fell_back = True

        provider = get_provider(kind)
        if not config.api_key:
            self._notify("Gemini API key is not configured.")
            raise ConfigurationError("API key not configured", provider=provider.name)
        if not provider.key_looks_valid(config.api_key):
            logger.warning(f"{AVAILABLE_ENGINES[kind.value]} API key format appears invalid")

        directive = build_user_context_directive(
            app_name=store.get_str(PREF_CONTEXT_APP_NAME),
            app_type=store.get_str(PREF_CONTEXT_APP_TYPE),
            audience=store.get_str(PREF_CONTEXT_AUDIENCE),
            tone=store.get_str(PREF_CONTEXT_TONE, DEFAULT_CONTEXT_TONE),
            notes=store.get_str(PREF_CONTEXT_NOTES),
        )
        context = DispatchContext(
            provider=provider,
            config=config,
            context_directive=directive,
            debug_logger=debug_logger,
            fell_back=fell_back,
        )
        debug_logger.log_line("ℹ️", f"Using {provider.name} engine (model={config.model})")
        self._context = context
        return context

    def session(self) -> DispatchContext:
        return self._context or self.start_session()

    async def close(self) -> None:
        await self.transport.close()

    # -- translation -----------------------------------------------------

    async def translate(
        self,
        text: str,
        source_lang: str,
        target_lang: str,
        *,
        context: DispatchContext | None = None,
    ) -> str:
        """Translate one string.

        Blank strings and strings without translatable characters come back
        unchanged without touching the network.
        """
        if not text or not text.strip():
            return text
        if is_non_translatable(text):
            logger.debug(f"Skipping non-translatable: {sanitize_preview(text)}")
            return text

        context = context or self.session()
        protected = protect_placeholders(text)
        request = TranslationRequest(protected.text, source_lang, target_lang, context.context_directive)
        prompt = build_translation_prompt(protected.text, source_lang, target_lang, context.context_directive)
        context.debug_logger.log_line(
            "ℹ️",
            f"Translate request via {context.engine} | src={source_lang} -> {target_lang} | chars={len(text)}",
        )

        result = await self._dispatch(context, prompt, request, len(text), sanitize_preview(text))
        return self._finish(text, result, protected)

    async def translate_batch(
        self,
        texts: Sequence[str],
        source_lang: str,
        target_lang: str,
        *,
        context: DispatchContext | None = None,
        progress_cb: ProgressCallback | None = None,
    ) -> List[str]:
        """Translate many strings with one numbered prompt per chunk.

        A chunk that fails as a whole is retried item by item; items that
        still fail keep their original text.
        """
        results = list(texts)
        total = len(results)
        pending = [i for i, text in enumerate(texts) if text and text.strip() and not is_non_translatable(text)]
        completed = total - len(pending)
        if progress_cb:
            progress_cb(completed, total)
        if not pending:
            return results

        context = context or self.session()
        dedup = deduplicate_texts([texts[i] for i in pending])
        groups = [[pending[j] for j in group] for group in dedup.groups]
        protected = [protect_placeholders(text) for text in dedup.unique_texts]

        limits = self.settings.translator
        chunks = chunk_by_char_limit(
            [item.text for item in protected], max_chars=limits.batch_char_limit, max_items=limits.batch_size
        )
        for chunk in chunks:
            translated = await self._translate_chunk(context, chunk, dedup.unique_texts, protected, source_lang, target_lang)
            for unique_index, value in zip(chunk, translated):
                for index in groups[unique_index]:
                    results[index] = value
                    completed += 1
            if progress_cb:
                progress_cb(completed, total)
        return results

    async def _translate_chunk(
        self,
        context: DispatchContext,
        chunk: List[int],
        originals: List[str],
        protected: List[ProtectedText],
        source_lang: str,
        target_lang: str,
    ) -> List[str]:
        if len(chunk) == 1:
            index = chunk[0]
            return [await self._translate_or_keep(originals[index], source_lang, target_lang, context)]

        tokenized = [protected[i].text for i in chunk]
        total_chars = sum(len(t) for t in tokenized)
        prompt = build_batch_prompt(tokenized, source_lang, target_lang, context.context_directive)
        request = TranslationRequest("\n".join(tokenized), source_lang, target_lang, context.context_directive)
        context.debug_logger.log_line(
            "ℹ️",
            f"Batch translate via {context.engine} | count={len(chunk)} | src={source_lang} -> {target_lang} "
            f"| totalChars={total_chars}",
        )
        try:
            raw = await self._dispatch(context, prompt, request, total_chars, f"[batch:{len(chunk)}] {total_chars} chars")
        except TranslationError as e:
            if e.kind in FATAL_BATCH_KINDS:
                raise
            logger.warning(f"Batch translation failed ({e.message}), falling back to individual translation")
            return [await self._translate_or_keep(originals[i], source_lang, target_lang, context) for i in chunk]

        values, found = parse_batch_response(raw, tokenized)
        if found == 0:
            logger.warning("Batch response could not be parsed, falling back to originals")
        elif found < len(chunk):
            logger.warning(f"Batch parse: {len(chunk) - found}/{len(chunk)} translations missing, kept originals")
        return [self._finish(originals[i], value, protected[i]) for i, value in zip(chunk, values)]

    async def _translate_or_keep(self, text: str, source_lang: str, target_lang: str, context: DispatchContext) -> str:
        try:
            return await self.translate(text, source_lang, target_lang, context=context)
        except TranslationError as e:
            if e.kind in FATAL_BATCH_KINDS:
                raise
            logger.warning(f"Individual translation failed for {sanitize_preview(text)!r}: {e.message}")
            return text

    @staticmethod
    def _finish(original: str, translated: str, protected: ProtectedText) -> str:
        if not protected.has_placeholders:
            return translated
        restored = restore_placeholders(translated, protected.placeholders)
        missing = missing_placeholders(original, restored)
        if missing:
            logger.warning(f"Placeholder validation failed ({', '.join(missing)}), returning original: {sanitize_preview(original)}")
            return original
        return restored

    # -- dispatch --------------------------------------------------------

    async def _dispatch(
        self,
        context: DispatchContext,
        prompt: str,
        request: TranslationRequest,
        input_chars: int,
        preview: str,
    ) -> str:
        switched = False
        while True:
            try:
                return await self._run_with_retry(context, prompt, request, input_chars, preview)
            except TranslationError as error:
                if not switched and await self.switcher.switch(context, error):
                    switched = True
                    continue
                if self.switcher.applies_to(context, error):
                    raise TranslationError(
                        f"{error.message}. Check the {context.engine} model settings.",
                        kind=error.kind,
                        status=error.status,
                        error_type=error.error_type,
                        provider=error.provider,
                    ) from error
                raise

    async def _run_with_retry(
        self,
        context: DispatchContext,
        prompt: str,
        request: TranslationRequest,
        input_chars: int,
        preview: str,
    ) -> str:
        config = context.config
        policy = RetryPolicy(max_retries=config.max_retries, backoff_base=self.settings.retry.backoff_base)
        controller = RetryController(policy, context.debug_logger, sleep=self.sleep)

        async def action() -> str:
            return await context.provider.translate(self.transport, prompt, request, config)

        info = AttemptInfo(
            engine=context.engine,
            model=config.model,
            source_lang=request.source_lang,
            target_lang=request.target_lang,
            input_chars=input_chars,
            preview=preview,
        )
        return await controller.run(action, info)


__all__ = ["DispatchContext", "DispatchEngine"]
