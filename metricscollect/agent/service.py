"""The metrics agent: polls runtime and host metrics and reports them to the server."""

from __future__ import annotations

import base64
import json
import threading
import time
from collections.abc import Callable, Sequence
from decimal import Decimal

import requests

from metricscollect.agent.collect import extra_metrics, runtime_metrics
from metricscollect.agent.metric import Agent, Metric, MetricType
from metricscollect.agent.semaphore import Semaphore
from metricscollect.agent.utils import compress
from metricscollect.crypto import sign
from metricscollect.logger import Logger

__all__ = ["MetricsAgent"]

_POLL_STEP = 0.05


class _Cancelled(Exception):
    """Raised internally when the agent is asked to stop while sending."""


class _WaitGroup:
    """Counts running workers and lets callers wait until none are left."""

    def __init__(self) -> None:
        self._count = 0
        self._cond = threading.Condition()

    def add(self) -> None:
        with self._cond:
            self._count += 1

    def done(self) -> None:
        with self._cond:
            self._count -= 1
            if self._count <= 0:
                self._count = 0
                self._cond.notify_all()

    def wait(self) -> None:
        with self._cond:
            while self._count:
                self._cond.wait()


class MetricsAgent(Agent):
    """Collects metrics on one schedule and sends them on another."""

    retry_delays: Sequence[float] = (1.0, 3.0, 5.0)

    def __init__(
        self,
        logger: Logger,
        update_interval: int,
        send_interval: int,
        hash_key: str,
        addr: str,
        rate_limit: int,
    ) -> None:
        self._logger = logger
        self._semaphore = Semaphore(rate_limit)

        self._metrics: list[Metric] = []
        self._extra_metrics: list[Metric] = []
        self._poll_count = Decimal(0)
        self._lock = threading.Lock()

        self._closed = threading.Event()
        self._stop = threading.Event()
        self._workers = _WaitGroup()

        self._update_interval = update_interval
        self._send_interval = send_interval
        self._addr = addr
        self._hash_key = hash_key

    @property
    def metrics(self) -> list[Metric]:
        """The runtime metrics from the latest poll, ending with ``PollCount``."""
        with self._lock:
            return list(self._metrics)

    @property
    def extra_metrics(self) -> list[Metric]:
        """The host metrics from the latest poll."""
        with self._lock:
            return list(self._extra_metrics)

    @property
    def poll_count(self) -> Decimal:
        """How many times the runtime metrics have been polled."""
        with self._lock:
            return self._poll_count

    def collect_metrics(self) -> None:
        """Poll the runtime metrics and bump the poll counter."""
        metrics = runtime_metrics()
        with self._lock:
            self._poll_count += 1
            metrics.append(
                Metric(id="PollCount", type=MetricType.COUNTER.value, value=self._poll_count)
            )
            self._metrics = metrics

    def collect_extra_metrics(self) -> None:
        """Poll host memory and CPU metrics; failures are logged and skipped."""
        try:
            metrics = extra_metrics()
        except Exception as exc:
            self._logger.errorw("can't get host metrics", "reason", exc)
            return
        with self._lock:
            self._extra_metrics = metrics

    def send_metrics(self) -> None:
        """Send the latest metrics to the server, retrying on network errors."""
        with self._lock:
            metrics = [*self._metrics, *self._extra_metrics]

        try:
            with requests.Session() as session:
                self._send_with_retry(session, metrics)
        except _Cancelled:
            return
        except (ValueError, requests.RequestException) as exc:
            self._logger.errorw("can't send metrics", "reason", exc)

    def _build_payload(self, metrics: list[Metric]) -> bytes:
        units = []
        for metric in metrics:
            unit: dict[str, object] = {"id": metric.id, "type": metric.type}
            if metric.type == MetricType.COUNTER.value:
                unit["delta"] = int(metric.value)
            elif metric.type == MetricType.GAUGE.value:
                unit["value"] = float(metric.value)
            else:
                self._logger.errorw("wrong metric type", "type", metric.type, "ID", metric.id)
                raise ValueError("wrong metric type")
            units.append(unit)
        text = json.dumps(units or None, separators=(",", ":"), allow_nan=False)
        return text.encode("utf-8")

    def _send_with_retry(self, session: requests.Session, metrics: list[Metric]) -> None:
        body = self._build_payload(metrics)
        compressed = compress(body)

        headers = {
            "Content-Type": "application/json",
            "Content-Encoding": "gzip",
            "Accept-Encoding": "gzip",
        }
        if self._hash_key:
            headers["HashSHA256"] = base64.b64encode(sign(body, self._hash_key)).decode("ascii")

        last_error: requests.RequestException | None = None
        for delay in self.retry_delays:
            if self._stop.is_set():
                raise _Cancelled
            try:
                response = session.post(self._addr, data=compressed, headers=headers)
            except requests.RequestException as exc:
                self._logger.errorw("error in sending request", "reason", str(exc))
                last_error = exc
            else:
                self._logger.infow("response", "status", response.status_code)
                response.close()
                return

            if self._stop.is_set():
                raise _Cancelled
            self._logger.errorw("error in sending", "reason:", str(last_error), "sleep:", delay)
            if self._stop.wait(delay):
                raise _Cancelled

        if last_error is not None:
            raise last_error

    def _go(self, target: Callable[[], None]) -> None:
        self._workers.add()

        def worker() -> None:
            try:
                target()
            finally:
                self._workers.done()

        threading.Thread(target=worker, daemon=True).start()

    def _tick_loop(self, interval: int, stop: threading.Event, task: Callable[[], None]) -> None:
        period = float(interval)
        next_tick = time.monotonic() + period
        while True:
            if self._closed.is_set():
                self._logger.infow("close done")
                return
            if stop.is_set():
                self._logger.infow("ctx done")
                return
            now = time.monotonic()
            remaining = next_tick - now
            if remaining > 0:
                self._closed.wait(min(remaining, _POLL_STEP))
                continue
            task()
            next_tick = max(next_tick + period, now)

    def _update_task(self) -> None:
        self._logger.infow("update metrics", "status", "start")
        self.collect_metrics()
        self._logger.infow("update metrics", "status", "finished")

    def _update_extra_task(self) -> None:
        self._logger.infow("update extra metrics", "status", "start")
        self.collect_extra_metrics()
        self._logger.infow("update extra metrics", "status", "finished")

    def _send_task(self) -> None:
        self._logger.infow("send metrics", "status", "start")

        def send() -> None:
            with self._semaphore:
                self.send_metrics()
                self._logger.infow("send metrics", "status", "finished")

        self._go(send)

    def run(self, stop: threading.Event) -> None:
        """Poll and send on schedule until ``stop`` is set or the agent is closed."""
        if self._update_interval <= 0 or self._send_interval <= 0:
            raise ValueError("non-positive interval for the agent's schedule")
        self._stop = stop

        schedule = (
            (self._update_interval, self._update_task),
            (self._update_interval, self._update_extra_task),
            (self._send_interval, self._send_task),
        )
        for interval, task in schedule:
            self._go(lambda interval=interval, task=task: self._tick_loop(interval, stop, task))

        self._workers.wait()

    def close(self) -> None:
        """Stop the schedules, wait for running work and release the semaphore."""
        self._closed.set()
        self._workers.wait()
        self._semaphore.close()
        self._logger.info("goodbye from agent-svc")