"""The stored metric record, its key and the storage contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

__all__ = ["Metric", "Storage", "build_key"]

_PRIME = 31
_MOD = 1_000_000_007


@dataclass(frozen=True)
class Metric:
    """A stored metric: gauges use ``val``, counters use ``delta``."""

    id: str
    type: str
    val: float = 0.0
    delta: int = 0


def build_key(metric_name: str, metric_type: str) -> int:
    """Return the rolling hash of the name's bytes followed by the type's bytes."""
    key = 0
    for byte in metric_name.encode("utf-8") + metric_type.encode("utf-8"):
        key = (key * _PRIME + byte) % _MOD
    return key


class Storage(ABC):
    """Where the server keeps its metrics.

    Used as a context manager it holds the storage lock for the block.
    """

    @abstractmethod
    def set(self, metric: Metric) -> None:
        """Store ``metric`` under its key."""

    @abstractmethod
    def get(self, key: int) -> Metric | None:
        """Return the metric stored under ``key``, or ``None``."""

    @abstractmethod
    def get_all(self) -> list[Metric]:
        """Return every stored metric."""

    @abstractmethod
    def lock(self) -> None:
        """Take exclusive access to the storage."""

    @abstractmethod
    def unlock(self) -> None:
        """Release exclusive access."""

    @abstractmethod
    def actualize(self) -> None:
        """Bring the storage up to date from its backing source."""

    @abstractmethod
    def dump(self) -> None:
        """Persist the current state."""

    @abstractmethod
    def ping(self) -> None:
        """Raise if the storage is not reachable."""

    @abstractmethod
    def close(self) -> None:
        """Release resources held by the storage."""

    def __enter__(self) -> Storage:
        self.lock()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unlock()