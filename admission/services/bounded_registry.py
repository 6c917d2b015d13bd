"""Idle/LRU eviction wrapper around a limiter registry.

The core registry keeps every identity for the life of the process. This
wrapper is the opt-in policy for deployments with unbounded identity
cardinality: it tracks last use per identity and evicts from the wrapped
registry when an identity idles past ``idle_seconds`` or when more than
``max_entries`` identities are tracked (least recently used first).

Locking:
- A hit on a tracked identity reads the wrapped registry without a lock and
  records its use in one of ``stripes`` touch buffers, each with its own lock.
  Steady-state traffic therefore never queues on a registry-wide lock.
- Misses, ``get()``, explicit eviction and ``identities()`` take the
  bookkeeping lock. They first fold the buffered touches into the LRU order,
  then evict idle and over-capacity identities.

The tradeoff is that recency is applied lazily. Eviction only happens on the
slow path, so an identity may outlive ``idle_seconds`` until the next miss,
and a hit on such an identity goes to the slow path and is evicted there.
LRU order is exact up to touches that race with a concurrent miss.

An evicted identity starts over with a fresh limiter on its next request,
which forgets whatever budget it had consumed. Pick bounds well above the
longest window in use.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict

from admission.adapters.limiters.base import AbstractRateLimiter
from admission.core.clock import Clock, monotonic_clock
from admission.core.logging import hash_identity
from admission.services.registry import AbstractLimiterRegistry, LimiterFactory, LimiterRegistry

logger = logging.getLogger(__name__)


class _TouchStripe:
    __slots__ = ("touched", "hits", "lock")

    def __init__(self) -> None:
        self.touched: dict[str, float] = {}
        self.hits = 0
        self.lock = threading.Lock()


class BoundedLimiterRegistry(AbstractLimiterRegistry):
    """Thread-safe LRU + idle-timeout bound on tracked identities.

    Attributes:
        max_entries: Maximum number of tracked identities (None for unlimited).
        idle_seconds: Evict identities unused for this long (None to disable).
    """

    def __init__(
        self,
        inner: AbstractLimiterRegistry | None = None,
        *,
        max_entries: int | None = None,
        idle_seconds: float | None = None,
        clock: Clock | None = None,
        stripes: int = 16,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        if idle_seconds is not None and idle_seconds <= 0:
            raise ValueError("idle_seconds must be > 0")
        if stripes < 1:
            raise ValueError("stripes must be >= 1")

        self._inner = inner or LimiterRegistry()
        self.max_entries = max_entries
        self.idle_seconds = idle_seconds
        self._clock = clock or monotonic_clock
        self._last_used: OrderedDict[str, float] = OrderedDict()
        self._stripes = tuple(_TouchStripe() for _ in range(stripes))
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"BoundedLimiterRegistry(max_entries={self.max_entries}, "
            f"idle_seconds={self.idle_seconds}, size={len(self._last_used)}, "
            f"evictions={self._evictions})"
        )

    def _stripe_for(self, identity: str) -> _TouchStripe:
        return self._stripes[hash(identity) % len(self._stripes)]

    def _is_idle(self, last_used: float, now: float) -> bool:
        return self.idle_seconds is not None and now - last_used >= self.idle_seconds

    def get_or_create(self, identity: str, factory: LimiterFactory) -> AbstractRateLimiter:
        """Return the limiter for ``identity`` and mark it as recently used.

        A fresh hit only takes its touch stripe's lock. Everything else runs
        under the bookkeeping lock so the tracked set and the wrapped registry
        stay consistent.
        """
        limiter = self._inner.get(identity) if identity else None
        if limiter is not None:
            now = self._clock()
            stripe = self._stripe_for(identity)
            with stripe.lock:
                last_used = stripe.touched.get(identity, self._last_used.get(identity))
                if last_used is not None and not self._is_idle(last_used, now):
                    stripe.touched[identity] = now
                    stripe.hits += 1
                    return limiter

        with self._lock:
            now = self._clock()
            self._apply_touches_locked()
            self._evict_idle_locked(now)

            if identity in self._last_used:
                self._hits += 1
            else:
                self._misses += 1

            limiter = self._inner.get_or_create(identity, factory)
            self._last_used[identity] = now
            self._last_used.move_to_end(identity)
            self._evict_over_capacity_locked()
            return limiter

    def get(self, identity: str) -> AbstractRateLimiter | None:
        with self._lock:
            self._apply_touches_locked()
            self._evict_idle_locked(self._clock())
            return self._inner.get(identity)

    def evict(self, identity: str) -> bool:
        with self._lock:
            self._last_used.pop(identity, None)
            self._drop_touch(identity)
            return self._inner.evict(identity)

    def identities(self) -> list[str]:
        """Return tracked identities, least recently used first."""
        with self._lock:
            self._apply_touches_locked()
            return list(self._last_used)

    def clear(self) -> None:
        """Remove all identities and reset counters."""
        with self._lock:
            for stripe in self._stripes:
                with stripe.lock:
                    stripe.touched.clear()
                    stripe.hits = 0
            self._last_used.clear()
            self._inner.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def stats(self) -> dict[str, int | float | None]:
        """Return lightweight registry metrics without exposing identities."""
        with self._lock:
            fast_hits = 0
            for stripe in self._stripes:
                with stripe.lock:
                    fast_hits += stripe.hits
            return {
                "max_entries": self.max_entries,
                "idle_seconds": self.idle_seconds,
                "entries": len(self._last_used),
                "hits": self._hits + fast_hits,
                "misses": self._misses,
                "evictions": self._evictions,
            }

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._last_used

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_used)

    def _drop_touch(self, identity: str) -> None:
        stripe = self._stripe_for(identity)
        with stripe.lock:
            stripe.touched.pop(identity, None)

    def _apply_touches_locked(self) -> None:
        pending: list[tuple[float, str]] = []
        for stripe in self._stripes:
            with stripe.lock:
                if stripe.touched:
                    pending.extend((ts, identity) for identity, ts in stripe.touched.items())
                    stripe.touched.clear()

        for ts, identity in sorted(pending):
            # Touches for identities evicted since they were recorded are stale
            if identity in self._last_used and ts >= self._last_used[identity]:
                self._last_used[identity] = ts
                self._last_used.move_to_end(identity)

    def _evict_single_locked(self, identity: str, reason: str) -> None:
        self._last_used.pop(identity, None)
        self._drop_touch(identity)
        self._inner.evict(identity)
        self._evictions += 1
        logger.debug(
            "registry.bounded_evicted",
            extra={"identity_hash": hash_identity(identity), "reason": reason},
        )

    def _evict_idle_locked(self, now: float) -> None:
        if self.idle_seconds is None:
            return

        # Entries are ordered by last use, so stop at the first fresh one
        while self._last_used:
            identity, last_used = next(iter(self._last_used.items()))
            if not self._is_idle(last_used, now):
                break
            self._evict_single_locked(identity, "idle")

    def _evict_over_capacity_locked(self) -> None:
        if self.max_entries is None:
            return

        while len(self._last_used) > self.max_entries:
            identity = next(iter(self._last_used))
            self._evict_single_locked(identity, "capacity")
