"""Time sources for limiters.

Limiters take a zero-argument callable returning seconds as a float. The
default is ``time.monotonic``; tests inject a ManualClock instead.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

Clock = Callable[[], float]

monotonic_clock: Clock = time.monotonic


class ManualClock:
    """Deterministic clock advanced explicitly by the caller."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._lock = threading.Lock()

    def __call__(self) -> float:
        with self._lock:
            return self._now

    def advance(self, seconds: float) -> float:
        """Move time forward by ``seconds`` and return the new reading."""
        if seconds < 0:
            raise ValueError("seconds must be >= 0")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, now: float) -> None:
        with self._lock:
            self._now = now
