"""
HTTP transport

Thin request/response layer used by providers and the model catalog.
Providers never talk to aiohttp directly so tests can swap in a stub.
"""
from __future__ import annotations

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import aiohttp

from .errors import ErrorKind, TranslationError

USER_AGENT = "AI-Translation-Hub/0.1"


@dataclass(slots=True)
class HttpResponse:
    status: int
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8"))


@dataclass(slots=True)
class ProviderRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None


class HttpTransport(ABC):
    @abstractmethod
    async def send(self, request: ProviderRequest, *, timeout: float) -> HttpResponse:
        """Perform one HTTP exchange.

        Raises TranslationError(kind=TRANSPORT) on timeouts and connection
        failures. Non-2xx statuses are returned, not raised.
        """

    async def close(self) -> None:
        return None


class AiohttpTransport(HttpTransport):
    def __init__(self, *, proxy: str | None = None) -> None:
        self.proxy = proxy
        self._session: Optional[aiohttp.ClientSession] = None
        self.logger = logging.getLogger(self.__class__.__name__)

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(headers={"User-Agent": USER_AGENT})
        return self._session

    async def close(self) -> None:
        """Close the session."""
        if self._session:
            await self._session.close()
            self._session = None

    async def send(self, request: ProviderRequest, *, timeout: float) -> HttpResponse:
        session = await self._get_session()
        headers = dict(request.headers)
        data = None
        if request.body is not None:
            data = json.dumps(request.body, ensure_ascii=False).encode("utf-8")
            headers["Content-Type"] = "application/json; charset=UTF-8"

        try:
            async with session.request(
                request.method,
                request.url,
                headers=headers,
                data=data,
                proxy=self.proxy,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as resp:
                body = await resp.read()
                self.logger.debug(f"{request.method} {_redact(request.url)} -> HTTP {resp.status}")
                return HttpResponse(status=resp.status, body=body)
        except asyncio.TimeoutError as e:
            raise TranslationError(
                f"Request timed out after {timeout:.0f}s", kind=ErrorKind.TRANSPORT
            ) from e
        except aiohttp.ClientError as e:
            raise TranslationError(f"Connection error: {e}", kind=ErrorKind.TRANSPORT) from e


def _redact(url: str) -> str:
    """Hide a ?key= query value in log lines."""
    head, sep, _ = url.partition("key=")
    return f"{head}{sep}***" if sep else url
