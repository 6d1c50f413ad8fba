from __future__ import annotations

import threading
import time

import pytest

from meigen.infrastructure.rwlock import ReadWriteLock


def test_readers_share_the_lock() -> None:
    lock = ReadWriteLock()
    with lock.read():
        with lock.read():
            assert lock.readers == 2
        assert lock.readers == 1
    assert lock.readers == 0


def test_writer_excludes_readers() -> None:
    lock = ReadWriteLock()
    entered = threading.Event()

    def reader() -> None:
        with lock.read():
            entered.set()

    with lock.write():
        assert lock.write_locked
        t = threading.Thread(target=reader)
        t.start()
        assert not entered.wait(0.1)
    t.join(timeout=2)
    assert entered.is_set()
    assert not lock.write_locked


def test_writers_are_mutually_exclusive() -> None:
    lock = ReadWriteLock()
    inside = 0
    peak = 0
    guard = threading.Lock()

    def writer() -> None:
        nonlocal inside, peak
        with lock.write():
            with guard:
                inside += 1
                peak = max(peak, inside)
            time.sleep(0.005)
            with guard:
                inside -= 1

    threads = [threading.Thread(target=writer) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert peak == 1


def test_waiting_writer_blocks_new_readers() -> None:
    lock = ReadWriteLock()
    order: list[str] = []
    lock.acquire_read()

    def writer() -> None:
        with lock.write():
            order.append("writer")

    def late_reader() -> None:
        with lock.read():
            order.append("reader")

    w = threading.Thread(target=writer)
    w.start()
    time.sleep(0.05)
    r = threading.Thread(target=late_reader)
    r.start()
    time.sleep(0.05)
    assert order == []
    lock.release_read()
    w.join(timeout=2)
    r.join(timeout=2)
    assert order == ["writer", "reader"]


def test_guards_release_on_exception() -> None:
    lock = ReadWriteLock()
    with pytest.raises(ValueError):
        with lock.write():
            raise ValueError("boom")
    assert not lock.write_locked
    with pytest.raises(ValueError):
        with lock.read():
            raise ValueError("boom")
    assert lock.readers == 0


def test_release_without_acquire_raises() -> None:
    lock = ReadWriteLock()
    with pytest.raises(RuntimeError):
        lock.release_read()
    with pytest.raises(RuntimeError):
        lock.release_write()
