"""
namereg.clock - time sources for `registered_at`.

A clock is any zero-argument callable returning a non-negative int. The
registry never reads wall-clock time directly.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

Clock = Callable[[], int]


class SystemClock:
    """Integer seconds since the epoch."""

    def __call__(self) -> int:
        return int(time.time())

    def __repr__(self) -> str:
        return "SystemClock()"


class ManualClock:
    """Settable clock for tests and deterministic replays."""

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError(f"clock must be non-negative, got {start}")
        self._now = int(start)
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            return self._now

    def set(self, now: int) -> None:
        if now < 0:
            raise ValueError(f"clock must be non-negative, got {now}")
        with self._lock:
            self._now = int(now)

    def advance(self, seconds: int = 1) -> int:
        with self._lock:
            self._now += int(seconds)
            return self._now

    def __repr__(self) -> str:
        return f"ManualClock(now={self._now})"


__all__ = ["Clock", "SystemClock", "ManualClock"]
