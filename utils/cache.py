from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List
import json
import threading
import time

from loguru import logger

from .store import PreferenceStore

FIELD_FETCHED_AT = "fetched_at"
FIELD_MODELS = "models"


@dataclass(slots=True, frozen=True)
class CacheDiagnostics:
    key: str
    model_count: int
    fetched_at: float
    has_data: bool
    expired: bool
    age: float  # seconds, -1 when never fetched

    @property
    def status(self) -> str:
        if not self.has_data:
            if self.fetched_at <= 0:
                return "Never fetched"
            return "Expired" if self.expired else "Empty result"
        return "Expired" if self.expired else "Fresh"


class ModelCache:
    """Timestamped catalog records stored as one JSON string per key.

    Each key has its own lock so a background refresh of one provider never
    blocks readers of another.
    """

    def __init__(self, store: PreferenceStore, *, ttl: float, clock: Callable[[], float] = time.time) -> None:
        self.store = store
        self.ttl = ttl
        self.clock = clock
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def save(self, key: str, entries: List[Dict[str, Any]]) -> None:
        payload = {FIELD_FETCHED_AT: self.clock(), FIELD_MODELS: list(entries)}
        with self._lock_for(key):
            self.store.set(key, json.dumps(payload, ensure_ascii=False))

    def load(self, key: str, ttl: float | None = None) -> List[Dict[str, Any]]:
        """Return cached entries, or [] when missing, corrupt or older than ttl.

        A ttl of 0 or less disables the age check.
        """
        ttl = self.ttl if ttl is None else ttl
        with self._lock_for(key):
            payload = self._read(key)
        if payload is None:
            return []
        fetched_at = float(payload.get(FIELD_FETCHED_AT) or 0)
        if ttl > 0 and self.clock() - fetched_at > ttl:
            return []
        models = payload.get(FIELD_MODELS)
        if not isinstance(models, list):
            return []
        return [entry for entry in models if isinstance(entry, dict)]

    def inspect(self, key: str) -> CacheDiagnostics:
        with self._lock_for(key):
            payload = self._read(key)
        if payload is None:
            return CacheDiagnostics(key, 0, 0, False, False, -1)
        fetched_at = float(payload.get(FIELD_FETCHED_AT) or 0)
        models = payload.get(FIELD_MODELS)
        count = len(models) if isinstance(models, list) else 0
        age = self.clock() - fetched_at if fetched_at > 0 else -1
        expired = fetched_at > 0 and age > self.ttl
        return CacheDiagnostics(key, count, fetched_at, count > 0, expired, age)

    def clear(self, key: str) -> None:
        with self._lock_for(key):
            self.store.remove(key)

    def _read(self, key: str) -> Dict[str, Any] | None:
        raw = self.store.get(key)
        if not raw:
            return None
        try:
            payload = json.loads(raw) if isinstance(raw, str) else raw
        except json.JSONDecodeError:
            logger.warning(f"Ignoring corrupt model cache record {key}")
            return None
        if not isinstance(payload, dict):
            return None
        try:
            fetched_at = float(payload.get(FIELD_FETCHED_AT) or 0)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring model cache record {key} with a bad timestamp")
            return None
        return {**payload, FIELD_FETCHED_AT: fetched_at}
