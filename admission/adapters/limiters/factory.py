"""Factory pattern for creating limiter instances."""

from __future__ import annotations

from admission.adapters.limiters.base import AbstractRateLimiter
from admission.adapters.limiters.fixed_window import FixedWindowCounter
from admission.adapters.limiters.interpolated_counter import InterpolatedSlidingWindowCounter
from admission.adapters.limiters.leaky_bucket import LeakyBucket, LeakyBucketQueue
from admission.adapters.limiters.sliding_counter import SlidingWindowCounter
from admission.adapters.limiters.sliding_log import SlidingWindowLog
from admission.adapters.limiters.token_bucket import TokenBucket
from admission.core.clock import Clock
from admission.core.config import LimiterSettings
from admission.core.errors import ConfigurationAppError
from admission.schemas.limiter import Algorithm, LeakModel, LimiterConfig, build_limiter_config

_LIMITER_CLASSES: dict[Algorithm, type[AbstractRateLimiter]] = {
    Algorithm.FIXED_WINDOW: FixedWindowCounter,
    Algorithm.SLIDING_LOG: SlidingWindowLog,
    Algorithm.SLIDING_COUNTER: SlidingWindowCounter,
    Algorithm.INTERPOLATED_SLIDING_COUNTER: InterpolatedSlidingWindowCounter,
    Algorithm.TOKEN_BUCKET: TokenBucket,
}


def resolve_algorithm(algorithm: Algorithm | str) -> Algorithm:
    """Normalize an algorithm name to the Algorithm enum.

    Raises:
        ConfigurationAppError: If the name is not a known algorithm.
    """
    if isinstance(algorithm, Algorithm):
        return algorithm
    try:
        return Algorithm(str(algorithm).strip().lower())
    except ValueError:
        supported = ", ".join(a.value for a in Algorithm)
        raise ConfigurationAppError(
            code="unknown_algorithm",
            message=f"Unknown admission algorithm: '{algorithm}'. Supported algorithms: {supported}",
            details={"algorithm": str(algorithm)},
        ) from None


def create_limiter(
    algorithm: Algorithm | str,
    config: LimiterConfig,
    *,
    clock: Clock | None = None,
) -> AbstractRateLimiter:
    """Instantiate the limiter implementing ``algorithm``.

    Args:
        algorithm: Algorithm enum member or its string value.
        config: Validated limiter parameters.
        clock: Optional time source (defaults to time.monotonic).

    Returns:
        AbstractRateLimiter: A fresh instance with its own state.

    Raises:
        ConfigurationAppError: If the algorithm is unknown.
    """
    resolved = resolve_algorithm(algorithm)

    if resolved is Algorithm.LEAKY_BUCKET:
        if config.leak_model is LeakModel.QUEUE:
            return LeakyBucketQueue(config, clock=clock)
        return LeakyBucket(config, clock=clock)

    return _LIMITER_CLASSES[resolved](config, clock=clock)


def config_from_settings(limiter_settings: LimiterSettings) -> LimiterConfig:
    """Build a LimiterConfig from environment-driven settings.

    Raises:
        ConfigurationAppError: If the settings describe an invalid limiter.
    """
    return build_limiter_config(
        limit=limiter_settings.limit,
        window_size=limiter_settings.window_seconds,
        bucket_count=limiter_settings.bucket_count,
        capacity=limiter_settings.capacity,
        refill_rate=limiter_settings.refill_rate,
        leak_rate=limiter_settings.leak_rate,
        leak_model=limiter_settings.leak_model.strip().lower(),
    )
