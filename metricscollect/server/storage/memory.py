"""In-memory metric storage with optional persistence to a JSON file."""

from __future__ import annotations

import json
import threading
from typing import Any

from metricscollect.kvstore import KeyValueStore
from metricscollect.logger import Logger
from metricscollect.server.storage.interface import Metric, Storage, build_key

__all__ = ["MemoryStorage"]


def _field(record: dict[str, Any], name: str, kind: type, default: Any) -> Any:
    value = record.get(name)
    if value is None:
        return default
    if kind is float:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"cannot unmarshal {value!r} into field {name} of type float64")
        return float(value)
    if kind is int:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"cannot unmarshal {value!r} into field {name} of type int64")
        return value
    if not isinstance(value, str):
        raise ValueError(f"cannot unmarshal {value!r} into field {name} of type string")
    return value


def _decode_metrics(text: str) -> list[Metric]:
    """Decode the first JSON value of ``text`` as a list of stored metrics."""
    start = len(text) - len(text.lstrip())
    if start == len(text):
        raise ValueError("EOF")
    data, _ = json.JSONDecoder().raw_decode(text, start)
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError("cannot unmarshal non-array into a list of metrics")
    metrics = []
    for record in data:
        if record is None:
            record = {}
        if not isinstance(record, dict):
            raise ValueError("cannot unmarshal non-object into a metric")
        metrics.append(
            Metric(
                id=_field(record, "id", str, ""),
                type=_field(record, "type", str, ""),
                val=_field(record, "val", float, 0.0),
                delta=_field(record, "delta", int, 0),
            )
        )
    return metrics


class MemoryStorage(Storage):
    """Keeps metrics in memory; saves them to ``filepath`` on close if one is set."""

    def __init__(self, logger: Logger, filepath: str = "", restore_data: bool = False) -> None:
        self._logger = logger
        self._store = KeyValueStore()
        self._mutex = threading.Lock()
        self._filepath = filepath

        if restore_data and filepath:
            with self._mutex:
                try:
                    self.actualize()
                except (OSError, ValueError) as exc:
                    logger.errorw("can't actualize memory storage", "reason", exc)
                    raise
                logger.infow("metrics are actualized successfully", "source file", filepath)

    @property
    def filepath(self) -> str:
        """The file the storage is restored from and dumped to."""
        return self._filepath

    def set(self, metric: Metric) -> None:
        self._store.set(build_key(metric.id, metric.type), metric)

    def get(self, key: int) -> Metric | None:
        stored = self._store.get(key)
        if stored is None:
            return None
        if not isinstance(stored, Metric):
            raise TypeError("can't cast stored value to a metric")
        return stored

    def get_all(self) -> list[Metric]:
        stored = self._store.get_all()
        if not all(isinstance(item, Metric) for item in stored):
            raise TypeError("can't cast stored value to a metric")
        return stored

    def lock(self) -> None:
        self._mutex.acquire()

    def unlock(self) -> None:
        self._mutex.release()

    def ping(self) -> None:
        """Confirm the in-memory store answers a lookup; it never fails."""
        self._store.get(0)

    def actualize(self) -> None:
        """Load metrics from the backing file; a missing file is not an error."""
        try:
            with open(self._filepath, encoding="utf-8") as source:
                text = source.read()
        except FileNotFoundError:
            self._logger.infow(
                "db is not actualized",
                "source file", self._filepath,
                "reason", "file doesn't exist",
            )
            return

        for metric in _decode_metrics(text):
            self.set(metric)

    def dump(self) -> None:
        """Write every stored metric to the backing file as JSON."""
        payload = [
            {"id": m.id, "type": m.type, "val": m.val, "delta": m.delta}
            for m in self.get_all()
        ]
        try:
            text = json.dumps(payload, allow_nan=False, separators=(",", ":"))
        except ValueError as exc:
            raise ValueError(f"can't encode metrics, reason: {exc}") from exc

        with open(self._filepath, "w", encoding="utf-8") as target:
            target.write(text + "\n")

        self._logger.infow(f"all metrics were dumped to {self._filepath}")

    def close(self) -> None:
        """Dump to the backing file if one is set."""
        with self._mutex:
            if self._filepath:
                self.dump()
        self._logger.info("goodbye from db-svc")