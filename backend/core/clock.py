import threading
from datetime import datetime, timedelta, timezone


class MonotonicClock:
    """UTC wall clock that never returns the same or an earlier value twice.

    Node listings are ordered by creation time, so two nodes created within
    the same clock tick (or across a backwards NTP step) must still receive
    distinct, increasing timestamps.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._last = None

    def now(self) -> datetime:
        with self._lock:
            current = datetime.now(timezone.utc)
            if self._last is not None and current <= self._last:
                current = self._last + timedelta(microseconds=1)
            self._last = current
            return current


clock = MonotonicClock()


def utcnow() -> datetime:
    return clock.now()


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from backends that drop tzinfo."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
