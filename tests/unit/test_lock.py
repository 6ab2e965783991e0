import threading
import time

import pytest

from sqlarfs._lock import ReadWriteLock


def test_read_lock_basic():
    lock = ReadWriteLock()
    lock.acquire_read()
    assert lock.is_locked
    lock.release_read()
    assert not lock.is_locked


def test_write_lock_basic():
    lock = ReadWriteLock()
    lock.acquire_write()
    assert lock.is_locked
    lock.release_write()
    assert not lock.is_locked


def test_context_managers_release():
    lock = ReadWriteLock()
    with lock.read_locked():
        assert lock.is_locked
    with lock.write_locked():
        assert lock.is_locked
    assert not lock.is_locked


def test_context_manager_releases_on_error():
    lock = ReadWriteLock()
    with pytest.raises(KeyError):
        with lock.write_locked():
            raise KeyError("boom")
    assert not lock.is_locked


def test_multiple_readers_allowed():
    """Three threads can concurrently hold read locks (simultaneous acquisition)."""
    lock = ReadWriteLock()
    acquired: list[bool] = []
    barrier = threading.Barrier(3)

    def reader():
        lock.acquire_read()
        barrier.wait()  # all three must have the lock before any records
        acquired.append(True)
        lock.release_read()

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5.0)
    assert len(acquired) == 3


def test_write_blocks_while_read_held():
    lock = ReadWriteLock()
    lock.acquire_read()
    with pytest.raises(BlockingIOError):
        lock.acquire_write(timeout=0.0)
    lock.release_read()


def test_read_blocks_while_write_held():
    lock = ReadWriteLock()
    lock.acquire_write()
    with pytest.raises(BlockingIOError):
        lock.acquire_read(timeout=0.0)
    lock.release_write()


def test_write_blocks_while_write_held():
    lock = ReadWriteLock()
    lock.acquire_write()
    with pytest.raises(BlockingIOError):
        lock.acquire_write(timeout=0.05)
    lock.release_write()


def test_failed_write_attempt_does_not_block_readers():
    lock = ReadWriteLock()
    lock.acquire_read()
    with pytest.raises(BlockingIOError):
        lock.acquire_write(timeout=0.01)
    lock.acquire_read(timeout=0.0)  # no writer is waiting any more
    lock.release_read()
    lock.release_read()
    assert not lock.is_locked


def test_waiting_writer_blocks_new_readers():
    lock = ReadWriteLock()
    lock.acquire_read()
    writer_done = threading.Event()

    def writer():
        with lock.write_locked(timeout=5.0):
            writer_done.set()

    t = threading.Thread(target=writer, daemon=True)
    t.start()
    deadline = time.monotonic() + 2.0
    while not lock._writers_waiting and time.monotonic() < deadline:
        time.sleep(0.001)
    with pytest.raises(BlockingIOError):
        lock.acquire_read(timeout=0.0)
    lock.release_read()
    assert writer_done.wait(timeout=3.0)
    t.join(timeout=3.0)


def test_acquire_read_with_none_timeout_waits():
    lock = ReadWriteLock()
    lock.acquire_write()
    acquired = threading.Event()

    def waiter():
        lock.acquire_read(timeout=None)
        acquired.set()
        lock.release_read()

    t = threading.Thread(target=waiter, daemon=True)
    t.start()
    lock.release_write()
    assert acquired.wait(timeout=3.0)
    t.join(timeout=3.0)


def test_release_read_without_acquire_raises():
    lock = ReadWriteLock()
    with pytest.raises(RuntimeError, match="release_read called without matching acquire_read"):
        lock.release_read()


def test_release_write_without_acquire_raises():
    lock = ReadWriteLock()
    with pytest.raises(RuntimeError, match="release_write called without matching acquire_write"):
        lock.release_write()
