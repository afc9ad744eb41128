"""Packet and byte counters with periodic and final throughput reports."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Callable, TextIO

from tpbench.clock import Timespec, clock_get

PREFIXES = ("", "K", "M", "G", "T", "P")
DEFAULT_INTERVAL = 500_000  # packets between periodic reports

_FACTOR = 10


@dataclass(frozen=True)
class ScaledValue:
    """A value reduced by powers of 1024 together with its unit prefix."""

    value: int
    prefix: str

    def __str__(self):
        return f"{self.value} {self.prefix}"


def scale_value(value):
    """Shift value down by 1024 until fewer than 100 units of the next prefix remain."""
    if value < 0:
        raise ValueError(f"cannot scale negative value: {value}")
    for prefix in PREFIXES:
        if value >> _FACTOR < 100 or prefix == PREFIXES[-1]:
            return ScaledValue(value, prefix)
        value >>= _FACTOR
    raise AssertionError("unreachable")


def bits_per_second(nbytes, elapsed):
    """Throughput at centisecond resolution, or None if elapsed is too short."""
    centisecs = elapsed.sec * 100 + elapsed.nsec // 10_000_000
    if centisecs <= 0:
        return None
    return (nbytes * 8 * 100) // centisecs


@dataclass
class Counter:
    """Counts packets, bytes and errors, reporting every `interval` packets."""

    desc: str
    interval: int = DEFAULT_INTERVAL
    stream: TextIO | None = None
    clock: Callable[[], Timespec] = clock_get
    count: int = field(default=0, init=False)
    bytes: int = field(default=0, init=False)
    errors: int = field(default=0, init=False)
    total_count: int = field(default=0, init=False)
    total_bytes: int = field(default=0, init=False)
    total_errors: int = field(default=0, init=False)
    firsttime: Timespec = field(init=False)
    lasttime: Timespec = field(init=False)

    def __post_init__(self):
        if self.interval <= 0:
            raise ValueError("interval must be positive")
        self.firsttime = self.clock()
        self.lasttime = self.firsttime

    def inc(self, nbytes):
        """Account for one transfer of nbytes; a negative size counts as an error."""
        if nbytes < 0:
            self.record_error()
            return
        self.count += 1
        self.bytes += nbytes
        self.total_count += 1
        self.total_bytes += nbytes
        if self.count % self.interval == 0:
            self._stats()

    def record_error(self):
        self.errors += 1
        self.total_errors += 1

    def final_stats(self):
        """Report totals since creation and return the report line."""
        if self.count:
            self._reset(self.clock())
        elapsed = self.lasttime - self.firsttime
        line = self._format(self.total_count, self.total_bytes, self.total_errors, elapsed)
        self._emit(line)
        return line

    def _stats(self):
        now = self.clock()
        elapsed = now - self.lasttime
        self._emit(self._format(self.count, self.bytes, self.errors, elapsed))
        self._reset(now)

    def _reset(self, lasttime):
        self.count = self.bytes = self.errors = 0
        self.lasttime = lasttime

    def _format(self, count, nbytes, errors, elapsed):
        bps = bits_per_second(nbytes, elapsed)
        rate = "- " if bps is None else str(scale_value(bps))
        return (
            f"{self.desc} {count} packets, {rate}bps "
            f"({scale_value(nbytes)}bytes, {errors} errors) for {elapsed} secs"
        )

    def _emit(self, line):
        print(line, file=self.stream if self.stream is not None else sys.stderr)