"""Admission controller: the surface a request-handling layer calls.

The caller resolves a client identity (API key, user id, IP, ...), asks the
controller for a decision, and maps a denial to its own rate-limit-exceeded
signal (e.g. HTTP 429). Transport concerns stay on the caller's side.

Design goals:
- Explicit lifecycle: the controller owns its registry. Create it at service
  startup and close it at shutdown; there is no module-level limiter state.
- Swap-friendly: any algorithm behind the same decision contract.
- Per-tier parameters: an optional resolver picks a config per identity.
"""

from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Callable

from admission.adapters.limiters.base import AbstractRateLimiter
from admission.adapters.limiters.factory import config_from_settings, create_limiter, resolve_algorithm
from admission.core.clock import Clock
from admission.core.config import LimiterSettings, settings
from admission.core.logging import bind_request_id, get_request_id, hash_identity
from admission.schemas.limiter import Algorithm, LimiterConfig
from admission.services.bounded_registry import BoundedLimiterRegistry
from admission.services.registry import AbstractLimiterRegistry, LimiterRegistry

logger = logging.getLogger(__name__)

ConfigResolver = Callable[[str], LimiterConfig]


@dataclass(frozen=True)
class AdmissionDecision:
    """Outcome of an admission check.

    Attributes:
        allowed: Whether the request may proceed.
        identity_hash: Truncated SHA-256 of the identity (safe to log/return).
        algorithm: Algorithm that made the decision.
        cost: Permits requested.
        checked_at: Arrival time the decision was made for (caller-supplied or
            read from the limiter clock).
        request_id: Correlation id bound while the decision was made.
    """

    allowed: bool
    identity_hash: str
    algorithm: Algorithm
    cost: int
    checked_at: float
    request_id: str | None = None


class AdmissionController:
    """Decide allow/deny per client identity under one algorithm."""

    def __init__(
        self,
        algorithm: Algorithm | str,
        config: LimiterConfig,
        *,
        registry: AbstractLimiterRegistry | None = None,
        clock: Clock | None = None,
        config_resolver: ConfigResolver | None = None,
        log_decisions: bool = True,
    ) -> None:
        """Initialize the controller.

        Args:
            algorithm: Algorithm used for every identity.
            config: Default limiter parameters.
            registry: Identity -> limiter map (a fresh LimiterRegistry if omitted).
            clock: Time source handed to every limiter.
            config_resolver: Optional per-identity config lookup (client tiers).
            log_decisions: Emit admission.allowed / admission.denied events.

        Raises:
            ConfigurationAppError: If the algorithm is unknown.
        """
        self._algorithm = resolve_algorithm(algorithm)
        self._config = config
        self._registry = registry if registry is not None else LimiterRegistry()
        self._clock = clock
        self._config_resolver = config_resolver
        self._log_decisions = log_decisions

    @classmethod
    def from_settings(
        cls,
        limiter_settings: LimiterSettings | None = None,
        *,
        clock: Clock | None = None,
        config_resolver: ConfigResolver | None = None,
    ) -> AdmissionController:
        """Build a controller from environment-driven settings.

        A BoundedLimiterRegistry is used when either registry bound is set.

        Raises:
            ConfigurationAppError: If settings describe an invalid limiter.
        """
        cfg = limiter_settings or settings.limiter
        config = config_from_settings(cfg)

        registry: AbstractLimiterRegistry = LimiterRegistry(shards=cfg.registry_shards)
        if cfg.registry_max_entries is not None or cfg.registry_idle_seconds is not None:
            registry = BoundedLimiterRegistry(
                registry,
                max_entries=cfg.registry_max_entries,
                idle_seconds=cfg.registry_idle_seconds,
                clock=clock,
            )

        logger.info(
            "admission.configured",
            extra={
                "algorithm": cfg.algorithm,
                "limit": config.limit,
                "window_s": config.window_size,
                "bounded_registry": isinstance(registry, BoundedLimiterRegistry),
            },
        )
        return cls(
            cfg.algorithm,
            config,
            registry=registry,
            clock=clock,
            config_resolver=config_resolver,
            log_decisions=cfg.log_decisions,
        )

    @property
    def algorithm(self) -> Algorithm:
        return self._algorithm

    @property
    def registry(self) -> AbstractLimiterRegistry:
        return self._registry

    def _build_limiter(self, identity: str) -> AbstractRateLimiter:
        config = self._config_resolver(identity) if self._config_resolver else self._config
        return create_limiter(self._algorithm, config, clock=self._clock)

    def limiter_for(self, identity: str) -> AbstractRateLimiter:
        """Return the limiter owned by ``identity``, creating it on first use."""
        return self._registry.get_or_create(identity, lambda: self._build_limiter(identity))

    def check(
        self,
        identity: str,
        *,
        cost: int = 1,
        now: float | None = None,
        request_id: str | None = None,
    ) -> AdmissionDecision:
        """Consume ``cost`` permits for ``identity`` if its limiter allows it.

        Args:
            identity: Client key the limit is scoped to.
            cost: Permits to consume (default 1).
            now: Arrival time; the limiter's clock is read when omitted.
            request_id: Correlation id bound to every log record emitted while
                deciding; the id already bound to the context is used when omitted.

        Returns:
            AdmissionDecision describing the outcome.

        Raises:
            ValueError: If identity is empty or cost is invalid.
        """
        scope = bind_request_id(request_id) if request_id is not None else nullcontext()
        with scope:
            limiter = self.limiter_for(identity)
            checked_at = now if now is not None else limiter.clock()
            allowed = limiter.allow(checked_at, cost=cost)
            decision = AdmissionDecision(
                allowed=allowed,
                identity_hash=hash_identity(identity),
                algorithm=self._algorithm,
                cost=cost,
                checked_at=checked_at,
                request_id=get_request_id(),
            )

            if self._log_decisions:
                self._log_decision(decision, limiter.config)
        return decision

    def _log_decision(self, decision: AdmissionDecision, config: LimiterConfig) -> None:
        extra = {
            "identity_hash": decision.identity_hash,
            "algorithm": decision.algorithm.value,
            "cost": decision.cost,
            "limit": config.limit,
            "window_s": config.window_size,
        }
        if decision.request_id is not None:
            extra["request_id"] = decision.request_id
        if decision.allowed:
            logger.info("admission.allowed", extra=extra)
        else:
            logger.warning("admission.denied", extra=extra)

    def close(self) -> None:
        """Release every tracked limiter (call at service shutdown)."""
        tracked = len(self._registry)
        self._registry.clear()
        logger.info("admission.closed", extra={"released": tracked})

    def __enter__(self) -> AdmissionController:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
