"""
Structured debug logging for translation attempts.

Every attempt gets a span that logs a start line and exactly one terminal
line. A disabled logger hands out a shared inert span, so call sites never
need to check whether debugging is on.
"""
from __future__ import annotations

import time
import uuid
from typing import Callable, Optional

from loguru import logger

from .text import flatten_newlines

TAG = "[AI Translation Hub]"


class DebugSpan:
    def __init__(
        self,
        emit: Optional[Callable[[str], None]] = None,
        *,
        engine: str = "",
        model: str = "",
        source_lang: str = "",
        target_lang: str = "",
        attempt: int = 0,
        total_attempts: int = 0,
        input_chars: int = 0,
        preview: str = "",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._emit = emit
        self.engine = engine
        self.model = model
        self.source_lang = source_lang
        self.target_lang = target_lang
        self.attempt = attempt
        self.total_attempts = total_attempts
        self.input_chars = input_chars
        self.preview = preview
        self._clock = clock
        self._started_at = clock()
        self._finished = False

    @property
    def enabled(self) -> bool:
        return self._emit is not None

    @property
    def finished(self) -> bool:
        return self._finished

    def _latency_ms(self) -> int:
        return int((self._clock() - self._started_at) * 1000)

    def log_start(self) -> None:
        if not self.enabled:
            return
        self._emit(
            f"🔍 {TAG} translate_start engine={self.engine} model={self.model} "
            f"src={self.source_lang} tgt={self.target_lang} "
            f"attempt={self.attempt}/{self.total_attempts} chars_in={self.input_chars} "
            f'preview="{self.preview}"'
        )

    def mark_success(self, output_chars: int) -> None:
        if not self.enabled or self._finished:
            return
        self._finished = True
        self._emit(
            f"✅ {TAG} translate_success engine={self.engine} model={self.model} "
            f"latency={self._latency_ms()}ms chars_out={output_chars} "
            f"attempt={self.attempt}/{self.total_attempts}"
        )

    def mark_failure(self, error: str, will_retry: bool) -> None:
        if not self.enabled or self._finished:
            return
        self._finished = True
        self._emit(
            f"❌ {TAG} translate_error engine={self.engine} model={self.model} "
            f"latency={self._latency_ms()}ms attempt={self.attempt}/{self.total_attempts} "
            f'retry={"yes" if will_retry else "no"} error="{flatten_newlines(error or "")}"'
        )


DISABLED_SPAN = DebugSpan()


class TranslationDebugLogger:
    def __init__(self, enabled: bool, *, session_id: str | None = None) -> None:
        self.enabled = enabled
        self.session_id = session_id or uuid.uuid4().hex[:8]
        self._logger = logger.bind(session=self.session_id)

    def new_span(
        self,
        *,
        engine: str,
        model: str,
        source_lang: str,
        target_lang: str,
        attempt: int,
        total_attempts: int,
        input_chars: int,
        preview: str,
    ) -> DebugSpan:
        if not self.enabled:
            return DISABLED_SPAN
        span = DebugSpan(
            self._emit,
            engine=engine,
            model=model,
            source_lang=source_lang,
            target_lang=target_lang,
            attempt=attempt,
            total_attempts=total_attempts,
            input_chars=input_chars,
            preview=preview,
        )
        span.log_start()
        return span

    def log_line(self, emoji: str | None, message: str) -> None:
        if not self.enabled or not message:
            return
        prefix = f"{emoji} " if emoji else ""
        self._emit(f"{prefix}{TAG} {message}")

    def _emit(self, line: str) -> None:
        self._logger.info(f"{line} | session={self.session_id}")
