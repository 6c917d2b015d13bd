"""Leaky bucket (counter and queue state models).

Both models drain at a strictly constant rate. Unlike the token bucket, a
long idle period does not bank credit: at most ``capacity`` permits are ever
admitted back to back, after which admissions are paced by the leak rate.
"""

from __future__ import annotations

import math
from collections import deque
from typing import Any

from admission.adapters.limiters.base import AbstractRateLimiter
from admission.core.clock import Clock
from admission.schemas.limiter import Algorithm, LimiterConfig


class LeakyBucket(AbstractRateLimiter):
    """Counter model: an integer water level drained by whole units.

    ``last_leak_time`` only advances when at least one whole unit leaked, so
    frequent calls spaced closer than one leak interval still accumulate
    toward the next leak instead of resetting it.
    """

    algorithm = Algorithm.LEAKY_BUCKET

    def __init__(self, config: LimiterConfig, *, clock: Clock | None = None) -> None:
        super().__init__(config, clock=clock)
        self._capacity = config.effective_capacity
        self._leak_rate = config.effective_leak_rate
        self._water = 0
        self._last_leak_time: float | None = None

    def _leak(self, now: float) -> None:
        if self._last_leak_time is None:
            self._last_leak_time = now
            return

        elapsed = max(0.0, now - self._last_leak_time)
        leaked = math.floor(elapsed * self._leak_rate)
        if leaked > 0:
            self._water = max(0, self._water - leaked)
            self._last_leak_time = now

    def _try_acquire(self, now: float, cost: int) -> bool:
        self._leak(now)

        if self._water + cost <= self._capacity:
            self._water += cost
            return True
        return False

    def _state(self) -> dict[str, Any]:
        return {"water": self._water, "last_leak_time": self._last_leak_time}

    def _reset_state(self) -> None:
        self._water = 0
        self._last_leak_time = None


class LeakyBucketQueue(AbstractRateLimiter):
    """Queue model: admission timestamps drained one per leak interval.

    ``last_leak_time`` advances by exact multiples of the leak interval, so
    the residual time toward the next leak is preserved across calls.
    """

    algorithm = Algorithm.LEAKY_BUCKET

    def __init__(self, config: LimiterConfig, *, clock: Clock | None = None) -> None:
        super().__init__(config, clock=clock)
        self._capacity = config.effective_capacity
        self._leak_interval = config.leak_interval
        self._queue: deque[float] = deque()
        self._last_leak_time: float | None = None

    def _leak(self, now: float) -> None:
        if self._last_leak_time is None:
            self._last_leak_time = now
            return

        leaked = math.floor(max(0.0, now - self._last_leak_time) / self._leak_interval)
        if leaked <= 0:
            return

        for _ in range(min(leaked, len(self._queue))):
            self._queue.popleft()
        self._last_leak_time += leaked * self._leak_interval

    def _try_acquire(self, now: float, cost: int) -> bool:
        self._leak(now)

        if len(self._queue) + cost <= self._capacity:
            self._queue.extend([now] * cost)
            return True
        return False

    def _state(self) -> dict[str, Any]:
        return {"queue": tuple(self._queue), "last_leak_time": self._last_leak_time}

    def _reset_state(self) -> None:
        self._queue.clear()
        self._last_leak_time = None
