"""Fixed-window counter.

Notes:
- O(1) memory and time per decision.
- Requests clustered around a window boundary can total up to ``2 * limit``
  within a very short span (end of one window plus start of the next). That
  is how the algorithm behaves; the sliding variants exist to smooth it.
"""

from __future__ import annotations

from typing import Any

from admission.adapters.limiters.base import AbstractRateLimiter
from admission.core.clock import Clock
from admission.schemas.limiter import Algorithm, LimiterConfig


class FixedWindowCounter(AbstractRateLimiter):
    """Count permits in a window that restarts once it has fully elapsed.

    The window is not aligned to multiples of ``window_size``: when a call
    arrives at or after the end of the current window, the new window starts
    at that call. If several windows elapsed in between, there is no catch-up,
    the window simply jumps forward to contain ``now``.
    """

    algorithm = Algorithm.FIXED_WINDOW

    def __init__(self, config: LimiterConfig, *, clock: Clock | None = None) -> None:
        super().__init__(config, clock=clock)
        self._count = 0
        self._window_start = 0.0

    def _try_acquire(self, now: float, cost: int) -> bool:
        if now - self._window_start >= self._config.window_size:
            self._count = 0
            self._window_start = now

        if self._count + cost <= self._config.limit:
            self._count += cost
            return True
        return False

    def remaining(self) -> int:
        """Permits left in the current window as of the last decision."""
        with self._lock:
            return max(0, self._config.limit - self._count)

    def _state(self) -> dict[str, Any]:
        return {"count": self._count, "window_start": self._window_start}

    def _reset_state(self) -> None:
        self._count = 0
        self._window_start = 0.0
