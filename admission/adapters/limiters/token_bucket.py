"""Token bucket.

Tokens accrue continuously at ``refill_rate`` up to ``capacity``; each permit
spends one. Idle time therefore banks a burst of up to ``capacity`` permits,
while the long-run admitted rate stays bounded by ``refill_rate``.
"""

from __future__ import annotations

import math
from typing import Any

from admission.adapters.limiters.base import AbstractRateLimiter
from admission.core.clock import Clock
from admission.schemas.limiter import Algorithm, LimiterConfig


class TokenBucket(AbstractRateLimiter):
    """Float token level clamped to ``[0, capacity]``.

    The refill timestamp is re-based on every call (even with zero elapsed
    time), which keeps each refill increment small and bounds floating-point
    drift over long uptimes.
    """

    algorithm = Algorithm.TOKEN_BUCKET

    def __init__(self, config: LimiterConfig, *, clock: Clock | None = None) -> None:
        super().__init__(config, clock=clock)
        self._capacity = float(config.effective_capacity)
        self._refill_rate = config.effective_refill_rate
        self._tokens = self._capacity
        self._last_refill_time: float | None = None

    def _clamp(self, tokens: float) -> float:
        return min(self._capacity, max(0.0, tokens))

    def _refill(self, now: float) -> None:
        if self._last_refill_time is not None:
            elapsed = max(0.0, now - self._last_refill_time)
            self._tokens = self._clamp(self._tokens + elapsed * self._refill_rate)
        self._last_refill_time = now

    def _try_acquire(self, now: float, cost: int) -> bool:
        self._refill(now)

        if self._tokens >= cost:
            self._tokens = self._clamp(self._tokens - cost)
            return True
        return False

    def wait_time(self, cost: int = 1, now: float | None = None) -> float:
        """Seconds until ``cost`` tokens will be available.

        Returns ``math.inf`` when cost exceeds capacity, since the bucket can
        never hold that many tokens.
        """
        if cost > self._capacity:
            return math.inf
        with self._lock:
            self._refill(self._observe(now))
            deficit = cost - self._tokens
            if deficit <= 0:
                return 0.0
            return deficit / self._refill_rate

    @property
    def tokens(self) -> float:
        with self._lock:
            return self._tokens

    def _state(self) -> dict[str, Any]:
        return {"tokens": self._tokens, "last_refill_time": self._last_refill_time}

    def _reset_state(self) -> None:
        self._tokens = self._capacity
        self._last_refill_time = None
