import threading

import pytest

from metricscollect.server.storage.interface import Metric, Storage, build_key


class DictStorage(Storage):
    def __init__(self):
        self.data = {}
        self.mutex = threading.Lock()
        self.events = []

    def set(self, metric):
        self.data[build_key(metric.id, metric.type)] = metric

    def get(self, key):
        return self.data.get(key)

    def get_all(self):
        return list(self.data.values())

    def lock(self):
        self.mutex.acquire()
        self.events.append("lock")

    def unlock(self):
        self.events.append("unlock")
        self.mutex.release()

    def actualize(self):
        pass

    def dump(self):
        pass

    def ping(self):
        pass

    def close(self):
        pass


def test_metric_defaults():
    metric = Metric("id", "counter")
    assert metric.val == 0.0
    assert metric.delta == 0


def test_build_key_empty_is_zero():
    assert build_key("", "") == 0


def test_build_key_single_byte_is_its_code():
    assert build_key("a", "") == ord("a")


def test_build_key_depends_only_on_concatenation():
    assert build_key("ab", "c") == build_key("a", "bc") == build_key("", "abc")


def test_build_key_distinguishes_types_and_stays_in_range():
    counter = build_key("Alloc", "counter")
    gauge = build_key("Alloc", "gauge")
    assert counter != gauge
    assert 0 <= counter < 1_000_000_007
    assert 0 <= gauge < 1_000_000_007
    assert build_key("Alloc", "gauge") == gauge


def test_build_key_wraps_long_names():
    key = build_key("x" * 500, "gauge")
    assert 0 <= key < 1_000_000_007


def test_storage_is_abstract():
    with pytest.raises(TypeError):
        Storage()


def test_context_manager_locks_and_unlocks():
    storage = DictStorage()
    metric = Metric("PollCount", "counter", delta=5)
    with storage as held:
        held.set(metric)
    assert storage.events == ["lock", "unlock"]
    assert storage.get(build_key("PollCount", "counter")) == metric


def test_context_manager_unlocks_on_error():
    storage = DictStorage()
    metric = Metric("Alloc", "gauge", val=1.5)
    with pytest.raises(KeyError):
        with storage:
            storage.set(metric)
            raise KeyError("boom")
    assert storage.events == ["lock", "unlock"]
    assert not storage.mutex.locked()
    key = build_key("Alloc", "gauge")
    assert storage.get(key) == Metric("Alloc", "gauge", val=1.5)