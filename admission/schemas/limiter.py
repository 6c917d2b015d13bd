"""Pydantic schemas for limiter construction parameters."""

from __future__ import annotations

import math
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from admission.core.errors import ConfigurationAppError


class Algorithm(str, Enum):
    """Interchangeable admission algorithms."""

    FIXED_WINDOW = "fixed_window"
    SLIDING_LOG = "sliding_log"
    SLIDING_COUNTER = "sliding_counter"
    INTERPOLATED_SLIDING_COUNTER = "interpolated_sliding_counter"
    LEAKY_BUCKET = "leaky_bucket"
    TOKEN_BUCKET = "token_bucket"


class LeakModel(str, Enum):
    """State model used by the leaky bucket.

    COUNTER keeps an integer water level; QUEUE keeps the admission
    timestamps themselves and drains them at exact leak intervals.
    """

    COUNTER = "counter"
    QUEUE = "queue"


class LimiterConfig(BaseModel):
    """Immutable limiter parameters.

    ``limit`` and ``window_size`` are always required. Bucket-style
    algorithms derive any omitted field from them, so a single config can be
    shared by every algorithm: capacity defaults to ``limit`` and both rates
    default to ``limit / window_size`` permits per second.
    """

    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)

    limit: int = Field(
        ...,
        gt=0,
        description="Maximum permits per window.",
    )
    window_size: float = Field(
        ...,
        gt=0,
        description="Window duration in seconds.",
    )
    bucket_count: int = Field(
        default=10,
        ge=1,
        description="Sub-buckets per window for the bucketed sliding counter.",
    )
    capacity: int | None = Field(
        default=None,
        gt=0,
        description="Token/leaky bucket capacity (defaults to limit).",
    )
    refill_rate: float | None = Field(
        default=None,
        gt=0,
        description="Tokens added per second (defaults to limit / window_size).",
    )
    leak_rate: float | None = Field(
        default=None,
        gt=0,
        description="Permits drained per second (defaults to limit / window_size).",
    )
    leak_model: LeakModel = Field(
        default=LeakModel.COUNTER,
        description="Leaky bucket state model.",
    )

    @model_validator(mode="after")
    def _check_derived_rates(self) -> LimiterConfig:
        # limit / window_size overflows for subnormal windows
        if not math.isfinite(self.effective_refill_rate) or not math.isfinite(self.effective_leak_rate):
            raise ValueError("window_size is too small: derived rate is not finite")
        return self

    @property
    def effective_capacity(self) -> int:
        return self.capacity if self.capacity is not None else self.limit

    @property
    def effective_refill_rate(self) -> float:
        if self.refill_rate is not None:
            return self.refill_rate
        return self.limit / self.window_size

    @property
    def effective_leak_rate(self) -> float:
        if self.leak_rate is not None:
            return self.leak_rate
        return self.limit / self.window_size

    @property
    def bucket_width(self) -> float:
        """Width in seconds of one sliding-counter bucket."""
        return self.window_size / self.bucket_count

    @property
    def leak_interval(self) -> float:
        """Seconds between two single-permit leaks."""
        return 1.0 / self.effective_leak_rate


def build_limiter_config(**values: Any) -> LimiterConfig:
    """Validate parameters and build a LimiterConfig.

    Args:
        **values: LimiterConfig fields.

    Returns:
        LimiterConfig: Validated, immutable config.

    Raises:
        ConfigurationAppError: If any parameter is missing or out of range.
    """
    try:
        return LimiterConfig(**values)
    except ValidationError as exc:
        errors = [
            {
                "field": ".".join(str(part) for part in err["loc"]) or "config",
                "type": err["type"],
                "message": err["msg"],
            }
            for err in exc.errors()
        ]
        fields = ", ".join(e["field"] for e in errors)
        raise ConfigurationAppError(
            code="invalid_limiter_config",
            message=f"Invalid limiter configuration: {fields}",
            details={"context": {"errors": errors}},
        ) from exc
