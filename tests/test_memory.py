import json

import pytest

from metricscollect.server.storage.interface import Metric, build_key
from metricscollect.server.storage.memory import MemoryStorage


class RecordingLogger:
    def __init__(self):
        self.calls = []

    def _record(name):
        def method(self, *args):
            self.calls.append((name, args))

        return method

    debug = _record("debug")
    info = _record("info")
    warn = _record("warn")
    error = _record("error")
    debugf = _record("debugf")
    infof = _record("infof")
    warnf = _record("warnf")
    errorf = _record("errorf")
    debugw = _record("debugw")
    infow = _record("infow")
    warnw = _record("warnw")
    errorw = _record("errorw")
    sync = _record("sync")


def test_set_get():
    logger = RecordingLogger()
    storage = MemoryStorage(logger, "", False)
    metrics = [
        Metric(id="id", type="counter", delta=100),
        Metric(id="1", type="gauge", val=42.0),
    ]
    for metric in metrics:
        with storage:
            storage.set(metric)
    for metric in metrics:
        with storage:
            assert storage.get(build_key(metric.id, metric.type)) == metric
    storage.close()
    assert logger.calls.count(("info", ("goodbye from db-svc",))) == 1


def test_get_all():
    storage = MemoryStorage(RecordingLogger(), "", False)
    metric1 = Metric(id="id1", type="counter", val=10)
    metric2 = Metric(id="id2", type="gauge", val=5.5)
    storage.lock()
    storage.set(metric1)
    storage.set(metric2)
    storage.unlock()

    with storage:
        all_metrics = storage.get_all()
    assert len(all_metrics) == 2
    assert metric1 in all_metrics
    assert metric2 in all_metrics


def test_get_missing_returns_none():
    storage = MemoryStorage(RecordingLogger(), "", False)
    assert storage.get(build_key("absent", "gauge")) is None


def test_set_replaces_existing_value():
    storage = MemoryStorage(RecordingLogger(), "", False)
    storage.set(Metric(id="x", type="gauge", val=1.0))
    storage.set(Metric(id="x", type="gauge", val=2.0))
    assert storage.get(build_key("x", "gauge")).val == 2.0
    assert len(storage.get_all()) == 1


def test_close_dumps_and_restore_round_trip(tmp_path):
    path = tmp_path / "metrics.json"
    first = MemoryStorage(RecordingLogger(), str(path), True)
    metrics = [
        Metric(id="PollCount", type="counter", delta=7),
        Metric(id="Alloc", type="gauge", val=12.5),
    ]
    for metric in metrics:
        first.set(metric)
    first.close()

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert sorted(item["id"] for item in saved) == ["Alloc", "PollCount"]

    logger = RecordingLogger()
    second = MemoryStorage(logger, str(path), True)
    assert sorted(second.get_all(), key=lambda m: m.id) == sorted(metrics, key=lambda m: m.id)
    assert ("infow", ("metrics are actualized successfully", "source file", str(path))) in logger.calls


def test_restore_missing_file_is_not_an_error(tmp_path):
    path = tmp_path / "absent.json"
    logger = RecordingLogger()
    storage = MemoryStorage(logger, str(path), True)
    assert storage.get_all() == []
    assert any(name == "infow" and args[0] == "db is not actualized" for name, args in logger.calls)


def test_restore_ignores_trailing_data(tmp_path):
    path = tmp_path / "metrics.json"
    path.write_text('[{"id":"a","type":"counter","val":0,"delta":3}]\ngarbage', encoding="utf-8")
    storage = MemoryStorage(RecordingLogger(), str(path), True)
    assert storage.get(build_key("a", "counter")) == Metric(id="a", type="counter", delta=3)


def test_restore_invalid_json_raises_and_logs(tmp_path):
    path = tmp_path / "metrics.json"
    path.write_text("{not json", encoding="utf-8")
    logger = RecordingLogger()
    with pytest.raises(ValueError):
        MemoryStorage(logger, str(path), True)
    assert [name for name, args in logger.calls if name == "errorw"] == ["errorw"]


def test_restore_rejects_fractional_delta(tmp_path):
    path = tmp_path / "metrics.json"
    path.write_text('[{"id":"a","type":"counter","delta":1.5}]', encoding="utf-8")
    with pytest.raises(ValueError):
        MemoryStorage(RecordingLogger(), str(path), True)


def test_restore_disabled_leaves_storage_empty(tmp_path):
    path = tmp_path / "metrics.json"
    path.write_text('[{"id":"a","type":"gauge","val":1.5,"delta":0}]', encoding="utf-8")
    storage = MemoryStorage(RecordingLogger(), str(path), False)
    assert storage.get_all() == []


def test_dump_empty_storage_writes_empty_list(tmp_path):
    path = tmp_path / "metrics.json"
    storage = MemoryStorage(RecordingLogger(), str(path), False)
    storage.dump()
    assert json.loads(path.read_text(encoding="utf-8")) == []


def test_close_without_file_does_not_write(tmp_path):
    logger = RecordingLogger()
    storage = MemoryStorage(logger, "", False)
    storage.set(Metric(id="a", type="gauge", val=1.0))
    storage.close()
    assert list(tmp_path.iterdir()) == []
    assert logger.calls == [("info", ("goodbye from db-svc",))]