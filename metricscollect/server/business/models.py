"""Metric models and the contract of the server's metrics collector."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

__all__ = [
    "MetricType",
    "WrongMetricValueError",
    "CounterMetric",
    "GaugeMetric",
    "RawMetric",
    "MetricsCollector",
]


class MetricType(str, Enum):
    """Kinds of metric the server understands."""

    COUNTER = "counter"
    GAUGE = "gauge"
    UNKNOWN = "unknown"


class WrongMetricValueError(ValueError):
    """Raised when a metric value is invalid or cannot be processed."""

    def __init__(self, message: str = "wrong metric value") -> None:
        super().__init__(message)


@dataclass(frozen=True)
class CounterMetric:
    """A counter and its accumulated value."""

    id: str
    delta: Decimal


@dataclass(frozen=True)
class GaugeMetric:
    """A gauge and its current value."""

    id: str
    value: Decimal


@dataclass(frozen=True)
class RawMetric:
    """A metric as received, before its type and value are parsed."""

    id: str
    type: str
    value: str


class MetricsCollector(ABC):
    """Updates and reads metrics on behalf of the HTTP layer."""

    @abstractmethod
    def update_metrics(
        self, metrics: list[RawMetric]
    ) -> tuple[list[CounterMetric], list[GaugeMetric]]:
        """Apply ``metrics`` and return the updated counters and gauges."""

    @abstractmethod
    def get_metric_value(
        self, metric_type: str, metric_name: str
    ) -> tuple[Decimal | None, MetricType | None]:
        """Return a metric's value and type, or ``(None, None)`` if absent."""

    @abstractmethod
    def get_all_metrics(self) -> tuple[list[CounterMetric], list[GaugeMetric]]:
        """Return every stored counter and gauge."""

    @abstractmethod
    def ping_db(self) -> None:
        """Raise if the storage backend is not reachable."""

    @abstractmethod
    def close(self) -> None:
        """Release resources held by the collector."""