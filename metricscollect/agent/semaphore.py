"""A counting semaphore that limits concurrent outgoing requests."""

from __future__ import annotations

import threading

__all__ = ["Semaphore"]


class Semaphore:
    """Allows at most ``max_requests`` holders at a time.

    ``release`` waits while nothing is held. After ``close``, acquiring raises
    ``RuntimeError`` and releasing never blocks.
    """

    def __init__(self, max_requests: int) -> None:
        if max_requests < 0:
            raise ValueError("max_requests must not be negative")
        self._capacity = max_requests
        self._held = 0
        self._closed = False
        self._cond = threading.Condition()

    def acquire(self) -> None:
        """Take a slot, waiting until one is free."""
        with self._cond:
            while True:
                if self._closed:
                    raise RuntimeError("acquire on a closed semaphore")
                if self._held < self._capacity:
                    break
                self._cond.wait()
            self._held += 1
            self._cond.notify_all()

    def release(self) -> None:
        """Give back a slot, waiting until one is held unless closed."""
        with self._cond:
            while self._held == 0 and not self._closed:
                self._cond.wait()
            if self._held:
                self._held -= 1
                self._cond.notify_all()

    def close(self) -> None:
        """Close the semaphore; closing twice raises ``RuntimeError``."""
        with self._cond:
            if self._closed:
                raise RuntimeError("close of a closed semaphore")
            self._closed = True
            self._cond.notify_all()

    def __enter__(self) -> Semaphore:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()