"""Sampling of process runtime and host metrics."""

from __future__ import annotations

import gc
import random
import sys
import threading
import time
from decimal import Decimal

import psutil

from metricscollect.agent.metric import Metric, MetricType

__all__ = ["runtime_metrics", "extra_metrics"]

_GAUGE = MetricType.GAUGE.value
_MIB = 1024 * 1024


class _GCTracker:
    """Records when collections finish and how long they take."""

    def __init__(self) -> None:
        self.last_gc_ns = 0
        self.pause_total_ns = 0
        self._started = 0

    def __call__(self, phase: str, info: dict) -> None:
        if phase == "start":
            self._started = time.perf_counter_ns()
        elif phase == "stop":
            if self._started:
                self.pause_total_ns += time.perf_counter_ns() - self._started
                self._started = 0
            self.last_gc_ns = time.time_ns()


_tracker = _GCTracker()
gc.callbacks.append(_tracker)


def _int(value: int) -> Decimal:
    return Decimal(int(value))


def _float(value: float) -> Decimal:
    return Decimal(repr(float(value)))


def _gauge(name: str, value: Decimal) -> Metric:
    return Metric(id=name, type=_GAUGE, value=value)


def runtime_metrics() -> list[Metric]:
    """Return the process runtime gauges, ending with ``RandomValue``."""
    process = psutil.Process()
    memory = process.memory_info()
    rss = memory.rss
    vms = memory.vms
    shared = getattr(memory, "shared", 0)

    stats = gc.get_stats()
    collections = sum(s["collections"] for s in stats)
    collected = sum(s["collected"] for s in stats)
    objects = sys.getallocatedblocks()
    next_gc = max(gc.get_threshold()[0] - gc.get_count()[0], 0)

    uptime_ns = max(time.time_ns() - int(process.create_time() * 1e9), 1)
    pause_ns = _tracker.pause_total_ns
    stack = threading.active_count() * threading.stack_size()

    values = [
        ("Alloc", _int(rss)),
        ("BuckHashSys", _int(0)),
        ("Frees", _int(collected)),
        ("GCCPUFraction", _float(pause_ns / uptime_ns)),
        ("GCSys", _int(0)),
        ("HeapAlloc", _int(rss)),
        ("HeapIdle", _int(max(vms - rss, 0))),
        ("HeapInuse", _int(rss)),
        ("HeapObjects", _int(objects)),
        ("HeapReleased", _int(0)),
        ("HeapSys", _int(vms)),
        ("LastGC", _int(_tracker.last_gc_ns)),
        ("Lookups", _int(0)),
        ("MCacheInuse", _int(0)),
        ("MCacheSys", _int(0)),
        ("MSpanInuse", _int(0)),
        ("MSpanSys", _int(0)),
        ("Mallocs", _int(objects + collected)),
        ("NextGC", _int(next_gc)),
        ("NumForcedGC", _int(0)),
        ("NumGC", _int(collections)),
        ("OtherSys", _int(shared)),
        ("PauseTotalNs", _int(pause_ns)),
        ("StackInuse", _int(stack)),
        ("StackSys", _int(stack)),
        ("Sys", _int(vms)),
        ("TotalAlloc", _int(rss)),
        ("RandomValue", _float(random.random())),
    ]
    return [_gauge(name, value) for name, value in values]


def extra_metrics() -> list[Metric]:
    """Return host memory in MiB and the CPU utilisation since the last call."""
    vm = psutil.virtual_memory()
    cpu = psutil.cpu_percent(interval=None)
    return [
        _gauge("TotalMemory", _int(vm.total // _MIB)),
        _gauge("FreeMemory", _int(vm.free // _MIB)),
        _gauge("CPUutilization1", _float(cpu)),
    ]