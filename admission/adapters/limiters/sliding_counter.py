"""Bucketed sliding-window counter.

The window is split into ``bucket_count`` fixed-width buckets, keyed by
``floor(now * bucket_count / window_size)``. Only the most recent
``bucket_count`` buckets are kept, so memory is O(bucket_count) regardless of
traffic. Precision is one bucket width: more buckets track the true sliding
window more closely, and a single bucket degenerates to an aligned fixed window.
"""

from __future__ import annotations

import math
from typing import Any

from admission.adapters.limiters.base import AbstractRateLimiter
from admission.core.clock import Clock
from admission.schemas.limiter import Algorithm, LimiterConfig


class SlidingWindowCounter(AbstractRateLimiter):
    """Sum per-bucket counts over the trailing window."""

    algorithm = Algorithm.SLIDING_COUNTER

    def __init__(self, config: LimiterConfig, *, clock: Clock | None = None) -> None:
        super().__init__(config, clock=clock)
        self._buckets: dict[int, int] = {}

    def _bucket_index(self, now: float) -> int:
        # Scale before dividing: now / bucket_width drifts below exact boundaries
        return math.floor(now * self._config.bucket_count / self._config.window_size)

    def _evict_stale(self, current_index: int) -> None:
        oldest = current_index - self._config.bucket_count + 1
        for index in [i for i in self._buckets if i < oldest]:
            del self._buckets[index]

    def _try_acquire(self, now: float, cost: int) -> bool:
        index = self._bucket_index(now)
        self._evict_stale(index)

        in_window = sum(self._buckets.values())
        if in_window + cost > self._config.limit:
            return False

        self._buckets[index] = self._buckets.get(index, 0) + cost
        return True

    def _state(self) -> dict[str, Any]:
        return {"buckets": dict(self._buckets)}

    def _reset_state(self) -> None:
        self._buckets.clear()
