import threading
import time

import pytest

from metricscollect.agent.semaphore import Semaphore


def test_acquire_waits_for_release():
    sem = Semaphore(2)
    first = sem.acquire()
    sem.acquire()
    done = threading.Event()

    def later_release():
        time.sleep(0.1)
        sem.release()
        done.set()

    worker = threading.Thread(target=later_release)
    worker.start()
    start = time.monotonic()
    third = sem.acquire()
    waited = time.monotonic() - start
    assert third == first
    assert waited >= 0.05
    assert done.wait(0.2)
    worker.join()
    sem.close()


def test_acquire_after_release():
    sem = Semaphore(1)
    first = sem.acquire()
    sem.release()
    results = []

    def grab():
        start = time.monotonic()
        value = sem.acquire()
        results.append((value, time.monotonic() - start))

    worker = threading.Thread(target=grab)
    worker.start()
    worker.join(1.0)
    assert len(results) == 1
    value, waited = results[0]
    assert value == first
    assert waited < 0.1
    sem.close()


def test_acquire_blocks_when_full():
    sem = Semaphore(1)
    first = sem.acquire()
    order = []

    def grab():
        value = sem.acquire()
        order.append(("acquired", value))

    worker = threading.Thread(target=grab, daemon=True)
    worker.start()
    time.sleep(0.05)
    order.append("released")
    sem.release()
    worker.join(1.0)
    assert order == ["released", ("acquired", first)]


def test_context_manager_frees_slot():
    sem = Semaphore(1)
    first = sem.acquire()
    sem.release()
    with sem:
        pass
    results = []

    def grab():
        start = time.monotonic()
        value = sem.acquire()
        results.append((value, time.monotonic() - start))

    worker = threading.Thread(target=grab, daemon=True)
    worker.start()
    worker.join(1.0)
    assert len(results) == 1
    value, waited = results[0]
    assert value == first
    assert waited < 0.5


def test_acquire_after_close_raises():
    sem = Semaphore(1)
    sem.close()
    with pytest.raises(RuntimeError):
        sem.acquire()


def test_close_twice_raises():
    sem = Semaphore(1)
    sem.close()
    with pytest.raises(RuntimeError):
        sem.close()


def test_release_after_close_does_not_block():
    sem = Semaphore(1)
    sem.close()
    worker = threading.Thread(target=sem.release, daemon=True)
    worker.start()
    worker.join(1.0)
    assert not worker.is_alive()


def test_negative_capacity_rejected():
    with pytest.raises(ValueError):
        Semaphore(-1)