"""The server's metrics collector working on top of a storage backend."""

from __future__ import annotations

import math
import re
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal

from metricscollect.logger import Logger
from metricscollect.server.business.models import (
    CounterMetric,
    GaugeMetric,
    MetricsCollector,
    MetricType,
    RawMetric,
    WrongMetricValueError,
)
from metricscollect.server.storage.interface import Metric, Storage, build_key

__all__ = ["Collector", "parse_metric_type"]

_INT_PATTERN = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


def parse_metric_type(value: str) -> MetricType:
    """Map ``value`` to a counter or gauge type, anything else to unknown."""
    if value == MetricType.COUNTER.value:
        return MetricType.COUNTER
    if value == MetricType.GAUGE.value:
        return MetricType.GAUGE
    return MetricType.UNKNOWN


def _parse_int64(text: str) -> int:
    if not _INT_PATTERN.fullmatch(text):
        raise ValueError(f"invalid syntax: {text!r}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"value out of range: {text!r}")
    return value


def _parse_float64(text: str) -> float:
    if not text or text != text.strip() or "_" in text:
        raise ValueError(f"invalid syntax: {text!r}")
    unsigned = text.lower().lstrip("+-")
    value = float.fromhex(text) if unsigned.startswith("0x") else float(text)
    if math.isinf(value) and unsigned not in ("inf", "infinity"):
        raise ValueError(f"value out of range: {text!r}")
    return value


def _wrap_int64(value: int) -> int:
    return (value - _INT64_MIN) % (1 << 64) + _INT64_MIN


def _decimal_from_float(value: float) -> Decimal:
    """Return the shortest decimal that round-trips to ``value``."""
    return Decimal(repr(value))


class Collector(MetricsCollector):
    """Parses, accumulates and reads metrics held in a :class:`Storage`."""

    def __init__(self, db: Storage, logger: Logger) -> None:
        self._db = db
        self._logger = logger

    @contextmanager
    def _locked(self) -> Iterator[None]:
        self._db.lock()
        try:
            yield
        finally:
            self._db.unlock()

    def update_metrics(
        self, metrics: list[RawMetric]
    ) -> tuple[list[CounterMetric], list[GaugeMetric]]:
        counters: dict[str, int] = {}
        gauges: dict[str, float] = {}

        for raw in metrics:
            kind = parse_metric_type(raw.type)
            if kind is MetricType.UNKNOWN:
                raise WrongMetricValueError(f"given metric type({raw.type}) in unknown")
            if kind is MetricType.COUNTER:
                try:
                    delta = _parse_int64(raw.value)
                except ValueError as exc:
                    raise WrongMetricValueError(
                        f"can't parse counter metric value({raw.value}) to int64, reason: {exc}"
                    ) from exc
                counters[raw.id] = _wrap_int64(counters.get(raw.id, 0) + delta)
            else:
                try:
                    gauges[raw.id] = _parse_float64(raw.value)
                except ValueError as exc:
                    raise WrongMetricValueError(
                        f"can't parse gauge metric value({raw.value}) to float64, reason: {exc}"
                    ) from exc

        counter_type = MetricType.COUNTER.value
        gauge_type = MetricType.GAUGE.value

        with self._locked():
            for metric_id, delta in counters.items():
                try:
                    stored = self._db.get(build_key(metric_id, counter_type))
                except Exception as exc:
                    self._logger.errorw("can't get counter metric from db", "reason", exc)
                    raise RuntimeError(f"can't get metric from db, reason: {exc}") from exc
                if stored is not None:
                    counters[metric_id] = _wrap_int64(delta + stored.delta)

            for metric_id, delta in counters.items():
                try:
                    self._db.set(Metric(id=metric_id, type=counter_type, delta=delta))
                except Exception as exc:
                    self._logger.errorw("can't update counter metrics", "reason", exc)
                    raise RuntimeError(f"can't update counter metrics, reason: {exc}") from exc

            for metric_id, value in gauges.items():
                try:
                    self._db.set(Metric(id=metric_id, type=gauge_type, val=value))
                except Exception as exc:
                    self._logger.errorw("can't update gauge metrics", "reason", exc)
                    raise RuntimeError(f"can't update gauge metrics, reason: {exc}") from exc

        return (
            [CounterMetric(id=k, delta=Decimal(v)) for k, v in counters.items()],
            [GaugeMetric(id=k, value=_decimal_from_float(v)) for k, v in gauges.items()],
        )

    def get_metric_value(
        self, metric_type: str, metric_name: str
    ) -> tuple[Decimal | None, MetricType | None]:
        with self._locked():
            kind = parse_metric_type(metric_type)
            if kind is MetricType.UNKNOWN:
                raise WrongMetricValueError(f"given metric type({metric_type}) in unknown")

            try:
                stored = self._db.get(build_key(metric_name, kind.value))
            except Exception as exc:
                self._logger.errorw(
                    "storage problem",
                    "msg", f"can't get {kind.value} metric val",
                    "reason", exc,
                )
                raise RuntimeError(
                    f"can't get {kind.value} metric val from db, reason: {exc}"
                ) from exc

            if stored is None:
                return None, None
            if kind is MetricType.COUNTER:
                return Decimal(stored.delta), MetricType.COUNTER
            return _decimal_from_float(stored.val), MetricType.GAUGE

    def get_all_metrics(self) -> tuple[list[CounterMetric], list[GaugeMetric]]:
        with self._locked():
            try:
                stored = self._db.get_all()
            except Exception as exc:
                self._logger.errorw(
                    "storage problem",
                    "msg", "can't get all metrics vals",
                    "reason", exc,
                )
                raise RuntimeError(f"can't get metrics from db, reason: {exc}") from exc

            counters: list[CounterMetric] = []
            gauges: list[GaugeMetric] = []
            for metric in stored:
                if metric.type == MetricType.COUNTER.value:
                    counters.append(CounterMetric(id=metric.id, delta=Decimal(metric.delta)))
                elif metric.type == MetricType.GAUGE.value:
                    gauges.append(GaugeMetric(id=metric.id, value=_decimal_from_float(metric.val)))
                else:
                    raise ValueError(f"incorrect metric type({metric.type}) from db")
            return counters, gauges

    def ping_db(self) -> None:
        try:
            self._db.ping()
        except Exception as exc:
            self._logger.errorw("can't ping db", "reason", exc)
            raise RuntimeError("can't ping db") from exc

    def close(self) -> None:
        self._logger.info("goodbye from business-svc")