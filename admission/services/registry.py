"""Per-client limiter registry.

Maps a client identity to its own limiter instance, created lazily on first
reference and shared by every caller presenting that identity afterwards.

Concurrency model:
- Identities are spread over ``shards`` dictionaries, each with its own lock.
- Lookups of known identities are a plain ``dict.get`` and take no lock.
- Creating a previously unseen identity locks only its shard and re-checks
  before inserting, so concurrent first access builds exactly one instance.

The registry never drops entries on its own. Wrap it in
BoundedLimiterRegistry to cap growth under high identity cardinality.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable

from admission.adapters.limiters.base import AbstractRateLimiter
from admission.core.logging import hash_identity

logger = logging.getLogger(__name__)

LimiterFactory = Callable[[], AbstractRateLimiter]


class AbstractLimiterRegistry(ABC):
    """Interface shared by the plain and the bounded registry."""

    @abstractmethod
    def get_or_create(self, identity: str, factory: LimiterFactory) -> AbstractRateLimiter:
        """Return the limiter for ``identity``, creating it with ``factory`` if absent."""
        raise NotImplementedError

    @abstractmethod
    def get(self, identity: str) -> AbstractRateLimiter | None:
        raise NotImplementedError

    @abstractmethod
    def evict(self, identity: str) -> bool:
        """Forget ``identity``. Returns True if it was registered."""
        raise NotImplementedError

    @abstractmethod
    def identities(self) -> list[str]:
        """Return a point-in-time list of registered identities."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        raise NotImplementedError

    @abstractmethod
    def __len__(self) -> int:
        raise NotImplementedError


class _Shard:
    __slots__ = ("entries", "lock")

    def __init__(self) -> None:
        self.entries: dict[str, AbstractRateLimiter] = {}
        self.lock = threading.Lock()


def _validate_identity(identity: str) -> None:
    if not identity:
        raise ValueError("identity must be a non-empty string")


class LimiterRegistry(AbstractLimiterRegistry):
    """Sharded, unbounded identity -> limiter map."""

    def __init__(self, *, shards: int = 16) -> None:
        """Initialize the registry.

        Args:
            shards: Number of independently locked partitions.

        Raises:
            ValueError: If shards is invalid.
        """
        if shards < 1:
            raise ValueError("shards must be >= 1")
        self._shards = tuple(_Shard() for _ in range(shards))

    def _shard_for(self, identity: str) -> _Shard:
        return self._shards[hash(identity) % len(self._shards)]

    def get_or_create(self, identity: str, factory: LimiterFactory) -> AbstractRateLimiter:
        """Return the limiter for ``identity``, creating it on first reference.

        Args:
            identity: Opaque client key (user id, API key, IP, ...).
            factory: Zero-argument callable building a new limiter.

        Returns:
            The single limiter instance registered for ``identity``.

        Raises:
            ValueError: If identity is empty.
            ConfigurationAppError: Propagated from ``factory``; nothing is
                registered in that case.
        """
        _validate_identity(identity)
        shard = self._shard_for(identity)

        limiter = shard.entries.get(identity)
        if limiter is not None:
            return limiter

        with shard.lock:
            limiter = shard.entries.get(identity)
            if limiter is None:
                limiter = factory()
                shard.entries[identity] = limiter
                logger.debug(
                    "registry.created",
                    extra={
                        "identity_hash": hash_identity(identity),
                        "algorithm": limiter.algorithm.value,
                    },
                )
        return limiter

    def get(self, identity: str) -> AbstractRateLimiter | None:
        return self._shard_for(identity).entries.get(identity)

    def evict(self, identity: str) -> bool:
        shard = self._shard_for(identity)
        with shard.lock:
            removed = shard.entries.pop(identity, None)
        if removed is not None:
            logger.debug("registry.evicted", extra={"identity_hash": hash_identity(identity)})
        return removed is not None

    def identities(self) -> list[str]:
        """Return a point-in-time list of registered identities."""
        result: list[str] = []
        for shard in self._shards:
            with shard.lock:
                result.extend(shard.entries)
        return result

    def clear(self) -> None:
        for shard in self._shards:
            with shard.lock:
                shard.entries.clear()

    def __contains__(self, identity: object) -> bool:
        if not isinstance(identity, str):
            return False
        return identity in self._shard_for(identity).entries

    def __len__(self) -> int:
        return sum(len(shard.entries) for shard in self._shards)
