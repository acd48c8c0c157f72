"""
Timestamps for the usage log.

Navigation orders wallpapers by their most recent usage event, so two events must never share a
timestamp. datetime.now() can repeat (coarse clocks, very fast successive calls) or even step
backwards when the wall clock is adjusted, so the cache reads time through MonotonicClock instead.

All readings are timezone-aware UTC. Local time repeats an hour when daylight saving ends, which
would reorder events recorded by different runs of wallkeep.
"""

import threading
from datetime import datetime, timedelta, timezone

TICK = timedelta(microseconds=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """Convert to aware UTC. Naive datetimes are taken to be local time."""

    return moment.astimezone(timezone.utc)


class MonotonicClock:
    """Callable returning UTC time, nudged forward so each reading is strictly greater."""

    def __init__(self, source=utc_now):
        self._source = source
        self._last = None
        self._lock = threading.Lock()

    def __call__(self) -> datetime:
        with self._lock:
            now = as_utc(self._source())
            if self._last is not None and now <= self._last:
                now = self._last + TICK
            self._last = now
            return now
