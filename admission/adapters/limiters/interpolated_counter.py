"""Interpolated sliding-window counter.

Keeps two integers, the permit count of the previous aligned window and of
the current one, and estimates the sliding-window count as

    estimate = (1 - elapsed_fraction) * previous + current

This is O(1) memory and smooths most of the fixed-window boundary burst, at
the cost of exactness: the estimate assumes the previous window's permits
were evenly spread, so thresholds are fractional.
"""

from __future__ import annotations

import math
from typing import Any

from admission.adapters.limiters.base import AbstractRateLimiter
from admission.core.clock import Clock
from admission.schemas.limiter import Algorithm, LimiterConfig


class InterpolatedSlidingWindowCounter(AbstractRateLimiter):
    """Approximate a sliding window from two adjacent fixed-window counts."""

    algorithm = Algorithm.INTERPOLATED_SLIDING_COUNTER

    def __init__(self, config: LimiterConfig, *, clock: Clock | None = None) -> None:
        super().__init__(config, clock=clock)
        self._previous_count = 0
        self._current_count = 0
        self._current_window_start = 0.0

    def _roll(self, now: float) -> None:
        window = self._config.window_size
        windows_passed = math.floor((now - self._current_window_start) / window)
        if windows_passed < 1:
            return

        # Two or more elapsed windows leave nothing of the previous one in range
        self._previous_count = self._current_count if windows_passed == 1 else 0
        self._current_count = 0
        self._current_window_start += windows_passed * window

    def _estimate(self, now: float) -> float:
        weight = (now - self._current_window_start) / self._config.window_size
        weight = min(max(weight, 0.0), 1.0)
        return (1.0 - weight) * self._previous_count + self._current_count

    def _try_acquire(self, now: float, cost: int) -> bool:
        self._roll(now)

        # For cost == 1 this is exactly ``estimate < limit``
        if self._estimate(now) + (cost - 1) < self._config.limit:
            self._current_count += cost
            return True
        return False

    def estimate(self, now: float | None = None) -> float:
        """Return the interpolated permit count in the window ending at ``now``."""
        with self._lock:
            now = self._observe(now)
            self._roll(now)
            return self._estimate(now)

    def _state(self) -> dict[str, Any]:
        return {
            "previous_count": self._previous_count,
            "current_count": self._current_count,
            "current_window_start": self._current_window_start,
        }

    def _reset_state(self) -> None:
        self._previous_count = 0
        self._current_count = 0
        self._current_window_start = 0.0
