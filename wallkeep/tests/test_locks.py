"""
Tests for cache/locks.py and cache/clock.py

Threads are coordinated with Events rather than sleeps wherever possible; the short timeouts only
bound how long a broken lock can hang the test run.
"""

import threading
import time
from datetime import datetime, timedelta, timezone

from wallkeep.cache.clock import MonotonicClock
from wallkeep.cache.clock import TICK
from wallkeep.cache.locks import ReadWriteLock


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    both_inside = threading.Barrier(2, timeout=2)
    results = []

    def reader():
        with lock.read_lock():
            # only passes if the other reader is inside at the same time
            both_inside.wait()
            results.append(True)

    threads = [threading.Thread(target=reader) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert results == [True, True]


def test_writer_excludes_readers():
    lock = ReadWriteLock()
    writer_inside = threading.Event()
    reader_done = threading.Event()

    lock.acquire_write()

    def reader():
        with lock.read_lock():
            reader_done.set()

    thread = threading.Thread(target=reader)
    thread.start()

    assert not reader_done.wait(timeout=0.2)

    lock.release_write()
    assert reader_done.wait(timeout=2)
    thread.join(timeout=2)


def test_writer_waits_for_readers():
    lock = ReadWriteLock()
    writer_done = threading.Event()

    lock.acquire_read()

    def writer():
        with lock.write_lock():
            writer_done.set()

    thread = threading.Thread(target=writer)
    thread.start()

    assert not writer_done.wait(timeout=0.2)

    lock.release_read()
    assert writer_done.wait(timeout=2)
    thread.join(timeout=2)


def test_waiting_writer_blocks_new_readers():
    lock = ReadWriteLock()
    order = []

    lock.acquire_read()

    def writer():
        with lock.write_lock():
            order.append("writer")

    def late_reader():
        with lock.read_lock():
            order.append("reader")

    writer_thread = threading.Thread(target=writer)
    writer_thread.start()

    # wait until the writer is queued
    deadline = time.monotonic() + 2
    while not lock._waiting_writers and time.monotonic() < deadline:
        time.sleep(0.01)

    reader_thread = threading.Thread(target=late_reader)
    reader_thread.start()
    time.sleep(0.1)

    lock.release_read()
    writer_thread.join(timeout=2)
    reader_thread.join(timeout=2)

    assert order == ["writer", "reader"]


def test_lock_released_on_exception():
    lock = ReadWriteLock()

    try:
        with lock.write_lock():
            raise ValueError("boom")
    except ValueError:
        pass

    acquired = threading.Event()

    def reader():
        with lock.read_lock():
            acquired.set()

    thread = threading.Thread(target=reader)
    thread.start()
    assert acquired.wait(timeout=2)
    thread.join(timeout=2)


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_monotonic_clock_passes_through_increasing_time():
    readings = iter([utc(2024, 1, 1), utc(2024, 1, 2)])
    clock = MonotonicClock(lambda: next(readings))

    assert clock() == utc(2024, 1, 1)
    assert clock() == utc(2024, 1, 2)


def test_monotonic_clock_never_repeats_or_goes_back():
    readings = iter([utc(2024, 1, 2), utc(2024, 1, 2), utc(2024, 1, 1), utc(2024, 1, 3)])
    clock = MonotonicClock(lambda: next(readings))

    values = [clock() for _ in range(4)]

    assert values[1] == utc(2024, 1, 2) + TICK
    assert values[2] == utc(2024, 1, 2) + 2 * TICK
    assert values[3] == utc(2024, 1, 3)
    assert values == sorted(set(values))


def test_monotonic_clock_reads_utc():
    eastern = timezone(timedelta(hours=-5))
    clock = MonotonicClock(lambda: datetime(2024, 11, 3, 1, 30, tzinfo=eastern))

    reading = clock()

    assert reading.utcoffset() == timedelta(0)
    assert reading == utc(2024, 11, 3, 6, 30)


def test_monotonic_clock_default_source_is_aware():
    assert MonotonicClock()().tzinfo is not None
