"""Thread-safe key/value storage keyed by integers."""

from __future__ import annotations

import threading
from typing import Any

__all__ = ["KeyValueStore"]


class KeyValueStore:
    """A dictionary guarded by a lock so it can be shared between threads."""

    def __init__(self) -> None:
        self._data: dict[int, Any] = {}
        self._lock = threading.Lock()

    def set(self, key: int, value: Any) -> None:
        """Insert or replace the value stored under ``key``."""
        with self._lock:
            self._data[key] = value

    def get(self, key: int) -> Any | None:
        """Return the value stored under ``key``, or ``None`` if absent."""
        with self._lock:
            return self._data.get(key)

    def get_all(self) -> list[Any]:
        """Return every stored value."""
        with self._lock:
            return list(self._data.values())

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._data

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)