"""Metric types and the agent contract."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

__all__ = [
    "MetricType",
    "Metric",
    "Agent",
    "SZ",
    "METRICS_COUNT",
    "EXTRA_METRICS_COUNT",
]

SZ = 10
METRICS_COUNT = 28
EXTRA_METRICS_COUNT = 3


class MetricType(str, Enum):
    """Kinds of metric an agent reports."""

    COUNTER = "counter"
    GAUGE = "gauge"


@dataclass(frozen=True)
class Metric:
    """A single collected metric."""

    id: str
    type: str
    value: Decimal


class Agent(ABC):
    """Collects metrics and reports them until stopped."""

    @abstractmethod
    def run(self, stop: threading.Event) -> None:
        """Work until ``stop`` is set or the agent is closed."""

    @abstractmethod
    def close(self) -> None:
        """Stop work and release resources."""