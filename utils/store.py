from __future__ import annotations

from pathlib import Path
from typing import Any, Dict
import json
import threading

from loguru import logger


class PreferenceStore:
    """JSON-file backed key/value preferences.

    Writes are serialised by one lock and are last-write-wins. With
    ``path=None`` the store lives only in memory.
    """

    def __init__(self, path: Path | None = None, *, auto_flush: bool = True, initial: Dict[str, Any] | None = None) -> None:
        self.path = path
        self.auto_flush = auto_flush
        self._lock = threading.RLock()
        self._data: Dict[str, Any] = {}
        self._dirty = False
        if path is not None:
            self._load()
        if initial:
            self._data.update(initial)

    def _load(self) -> None:
        if not self.path.exists():
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("{}", encoding="utf-8")
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except json.JSONDecodeError:
            logger.warning(f"Preferences file {self.path} is corrupt, starting empty")
            data = {}
        self._data = data if isinstance(data, dict) else {}

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data.get(key, default)

    def get_str(self, key: str, default: str = "") -> str:
        value = self.get(key)
        if value is None:
            return default
        return str(value)

    def get_int(self, key: str, default: int) -> int:
        value = self.get(key)
        if value is None or value == "":
            return default
        try:
            return int(str(value).strip())
        except ValueError:
            logger.warning(f"Failed to parse int preference {key}: {value!r}")
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in {"1", "true", "yes", "on"}

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._dirty = True
        if self.auto_flush:
            self.flush()

    def remove(self, key: str) -> None:
        with self._lock:
            if key not in self._data:
                return
            del self._data[key]
            self._dirty = True
        if self.auto_flush:
            self.flush()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return dict(self._data)

    def flush(self) -> None:
        with self._lock:
            if not self._dirty or self.path is None:
                self._dirty = False
                return
            with self.path.open("w", encoding="utf-8") as handle:
                json.dump(self._data, handle, ensure_ascii=False, indent=2)
            self._dirty = False
