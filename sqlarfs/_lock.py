import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager


def _deadline(timeout: float | None) -> float | None:
    if timeout is None:
        return None
    return time.monotonic() + max(0.0, timeout)


def _wait(condition: threading.Condition, deadline: float | None, what: str) -> None:
    if deadline is None:
        condition.wait()
        return
    remaining = deadline - time.monotonic()
    if remaining <= 0.0 or not condition.wait(timeout=remaining):
        raise BlockingIOError(f"Could not acquire {what} lock within timeout.")


class ReadWriteLock:
    """A readers–writer lock that prefers waiting writers.

    Any number of readers may hold the lock together; a writer needs it
    exclusively.  Once a writer is waiting, new readers queue behind it, so
    the occasional cache population is not starved by a stream of lookups.
    The lock is not reentrant.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers: int = 0
        self._writer: bool = False
        self._writers_waiting: int = 0

    def acquire_read(self, timeout: float | None = None) -> None:
        deadline = _deadline(timeout)
        with self._condition:
            while self._writer or self._writers_waiting:
                _wait(self._condition, deadline, "read")
            self._readers += 1

    def release_read(self) -> None:
        with self._condition:
            if self._readers <= 0:
                raise RuntimeError("release_read called without matching acquire_read")
            self._readers -= 1
            if self._readers == 0:
                self._condition.notify_all()

    def acquire_write(self, timeout: float | None = None) -> None:
        deadline = _deadline(timeout)
        with self._condition:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    _wait(self._condition, deadline, "write")
            finally:
                self._writers_waiting -= 1
                if not self._writers_waiting:
                    self._condition.notify_all()
            self._writer = True

    def release_write(self) -> None:
        with self._condition:
            if not self._writer:
                raise RuntimeError("release_write called without matching acquire_write")
            self._writer = False
            self._condition.notify_all()

    @contextmanager
    def read_locked(self, timeout: float | None = None) -> Iterator[None]:
        self.acquire_read(timeout)
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self, timeout: float | None = None) -> Iterator[None]:
        self.acquire_write(timeout)
        try:
            yield
        finally:
            self.release_write()

    @property
    def is_locked(self) -> bool:
        with self._condition:
            return self._writer or self._readers > 0
