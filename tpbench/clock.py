"""High-resolution clock selection and timespec arithmetic."""

from __future__ import annotations

import time
from dataclasses import dataclass

NSEC_PER_SEC = 1_000_000_000

_CLOCK_NAMES = ("CLOCK_MONOTONIC_RAW", "CLOCK_MONOTONIC", "CLOCK_REALTIME")

_clock_id: int | None = None


@dataclass(frozen=True, order=True)
class Timespec:
    """A point in time or a duration as seconds plus nanoseconds."""

    sec: int = 0
    nsec: int = 0

    @classmethod
    def from_ns(cls, ns):
        sec, nsec = divmod(ns, NSEC_PER_SEC)
        return cls(sec, nsec)

    def __sub__(self, other):
        if not isinstance(other, Timespec):
            return NotImplemented
        sec = self.sec - other.sec
        nsec = self.nsec - other.nsec
        while nsec < 0:
            sec -= 1
            nsec += NSEC_PER_SEC
        return Timespec(sec, nsec)

    def __str__(self):
        return f"{self.sec}.{self.nsec:09d}"


def clock_init():
    """Pick the most precise working clock and return its id."""
    global _clock_id
    if _clock_id is not None:
        return _clock_id
    gettime = getattr(time, "clock_gettime_ns", None)
    if gettime is not None:
        for name in _CLOCK_NAMES:
            clock_id = getattr(time, name, None)
            if clock_id is None:
                continue
            try:
                gettime(clock_id)
            except OSError:
                continue
            _clock_id = clock_id
            return clock_id
    raise OSError("clock_gettime failed")


def clock_get():
    """Return the current time of the selected clock."""
    clock_id = clock_init()
    return Timespec.from_ns(time.clock_gettime_ns(clock_id))


def clock_sub(a, b):
    """Return a - b, normalised so that nanoseconds are not negative."""
    return a - b