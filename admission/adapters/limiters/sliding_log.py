"""Sliding-window log.

Exact: keeps the timestamp of every admitted permit still inside the trailing
window. Memory grows with accepted volume (at most ``limit`` entries), and
each call pops whatever expired since the previous one, which is amortized
O(1) over time.
"""

from __future__ import annotations

from collections import deque
from typing import Any

from admission.adapters.limiters.base import AbstractRateLimiter
from admission.core.clock import Clock
from admission.schemas.limiter import Algorithm, LimiterConfig


class SlidingWindowLog(AbstractRateLimiter):
    """Admit while fewer than ``limit`` permits fall in ``(now - window, now]``."""

    algorithm = Algorithm.SLIDING_LOG

    def __init__(self, config: LimiterConfig, *, clock: Clock | None = None) -> None:
        super().__init__(config, clock=clock)
        self._log: deque[float] = deque()

    def _evict_expired(self, now: float) -> None:
        cutoff = now - self._config.window_size
        while self._log and self._log[0] <= cutoff:
            self._log.popleft()

    def _try_acquire(self, now: float, cost: int) -> bool:
        self._evict_expired(now)

        if len(self._log) + cost > self._config.limit:
            return False

        # One entry per permit so the log length is the in-window permit count
        self._log.extend([now] * cost)
        return True

    def retry_after(self, now: float | None = None) -> float:
        """Seconds until the oldest logged permit leaves the window.

        Returns 0 when a single permit would be admitted at ``now``.
        """
        with self._lock:
            now = self._observe(now)
            self._evict_expired(now)
            if len(self._log) < self._config.limit:
                return 0.0
            return max(0.0, self._log[0] + self._config.window_size - now)

    def _state(self) -> dict[str, Any]:
        return {"log": tuple(self._log)}

    def _reset_state(self) -> None:
        self._log.clear()
