from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from loguru import logger

from config import RetryPolicy
from utils.debug_log import TranslationDebugLogger

from .errors import ErrorKind, TranslationError, TranslationInterrupted

Sleep = Callable[[float], Awaitable[None]]


@dataclass(slots=True)
class AttemptInfo:
    """What a debug span needs to know about the call being retried."""

    engine: str
    model: str
    source_lang: str
    target_lang: str
    input_chars: int
    preview: str


class RetryController:
    """Run one provider call with bounded retries and exponential backoff.

    Attempts are strictly sequential. Non-retryable errors and the error of
    the final attempt propagate unchanged.
    """

    def __init__(
        self,
        policy: RetryPolicy,
        debug_logger: TranslationDebugLogger,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.policy = policy
        self.debug_logger = debug_logger
        self.sleep = sleep

    async def run(self, action: Callable[[], Awaitable[str]], info: AttemptInfo) -> str:
        total = self.policy.max_attempts
        last_error: TranslationError | None = None

        for attempt in range(total):
            span = self.debug_logger.new_span(
                engine=info.engine,
                model=info.model,
                source_lang=info.source_lang,
                target_lang=info.target_lang,
                attempt=attempt + 1,
                total_attempts=total,
                input_chars=info.input_chars,
                preview=info.preview,
            )
            try:
                result = await action()
            except TranslationError as exc:
                error = exc
            except (asyncio.CancelledError, KeyboardInterrupt):
                span.mark_failure("cancelled", False)
                raise
            except Exception as exc:  # noqa: BLE001
                error = TranslationError(str(exc) or exc.__class__.__name__, kind=ErrorKind.UNKNOWN, provider=info.engine)
                error.__cause__ = exc
            else:
                span.mark_success(len(result))
                return result

            last_error = error
            will_retry = error.retryable and attempt < total - 1
            logger.debug(f"Attempt {attempt + 1}/{total} via {info.engine} failed: {error.message}")
            span.mark_failure(error.message, will_retry)
            if not will_retry:
                raise error

            delay = self.policy.delay_for(attempt)
            try:
                await self.sleep(delay)
            except asyncio.CancelledError as exc:
                raise TranslationInterrupted(provider=info.engine) from exc

        # unreachable unless max_attempts is 0
        raise last_error or TranslationError("Translation failed", provider=info.engine)
