"""Shared decision contract for admission algorithms.

Callers depend on AbstractRateLimiter only, so algorithms can be swapped per
deployment (or per client tier) without touching the request-handling layer.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from admission.core.clock import Clock, monotonic_clock
from admission.schemas.limiter import Algorithm, LimiterConfig

logger = logging.getLogger(__name__)


class AbstractRateLimiter(ABC):
    """Interface and locking skeleton shared by every algorithm.

    A limiter instance holds the state for exactly one client identity. All
    reads and writes of that state happen inside ``allow()`` (or
    ``snapshot()``/``reset()``) under the instance's own lock, so different
    identities never contend with each other.

    Timestamps are float seconds from a monotonic clock. A ``now`` older than
    the latest one already observed is clamped to it, so elapsed time is never
    negative and a regressing clock cannot mint tokens or un-leak water.
    """

    algorithm: ClassVar[Algorithm]

    def __init__(self, config: LimiterConfig, *, clock: Clock | None = None) -> None:
        """Initialize shared limiter plumbing.

        Args:
            config: Validated, immutable limiter parameters.
            clock: Time source returning monotonic seconds.
        """
        self._config = config
        self._clock = clock or monotonic_clock
        self._lock = threading.RLock()
        self._latest_now: float | None = None

    @property
    def config(self) -> LimiterConfig:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    def allow(self, now: float | None = None, *, cost: int = 1) -> bool:
        """Decide whether a request may proceed, consuming budget on success.

        Args:
            now: Arrival time in seconds; read from the clock when omitted.
            cost: Permits to consume (default 1).

        Returns:
            True if admitted. A denied call records no permit.

        Raises:
            ValueError: If cost is invalid.
        """
        if cost < 1:
            raise ValueError("cost must be >= 1")

        with self._lock:
            return self._try_acquire(self._observe(now), cost)

    def snapshot(self) -> dict[str, Any]:
        """Return a copy of the algorithm state for observability."""
        with self._lock:
            return self._state()

    def reset(self) -> None:
        """Drop all consumed budget and return to the initial state."""
        with self._lock:
            self._latest_now = None
            self._reset_state()

    def _observe(self, now: float | None) -> float:
        """Resolve ``now`` and clamp it to the latest observed timestamp."""
        if now is None:
            now = self._clock()

        if self._latest_now is not None and now < self._latest_now:
            logger.debug(
                "limiter.clock_regression",
                extra={
                    "algorithm": self.algorithm.value,
                    "observed": now,
                    "latest": self._latest_now,
                },
            )
            return self._latest_now

        self._latest_now = now
        return now

    @abstractmethod
    def _try_acquire(self, now: float, cost: int) -> bool:
        """Apply the algorithm at ``now``. Called with the lock held."""
        raise NotImplementedError

    @abstractmethod
    def _state(self) -> dict[str, Any]:
        """Return a detached copy of the state. Called with the lock held."""
        raise NotImplementedError

    @abstractmethod
    def _reset_state(self) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"{type(self).__name__}({self._config!r})"
