"""Engine exception types.

Admission decisions are plain booleans and never raise. The types here cover
construction-time failures, so callers can handle a bad limiter setup
consistently and log it with a stable code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability."""

    code: str
    message: str
    hint: str
    field: str
    algorithm: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for engine failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when input validation fails."""


class ConfigurationAppError(ValidationAppError):
    """Raised when a limiter cannot be constructed from the given parameters."""
