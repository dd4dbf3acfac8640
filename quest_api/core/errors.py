"""Application-level exception types.

This module defines domain errors used across handlers and adapters, enabling
consistent error handling, logging, and API responses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NotRequired, TypedDict

if TYPE_CHECKING:
    from quest_api.adapters.rate_limit.base import RateLimitDecision
    from quest_api.validation.validator import FieldViolation


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    code: str
    message: str
    hint: str
    http_status: int
    retry_after: float
    max_bytes: int
    provider: str
    request_id: str
    violations: list[dict[str, str]]
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

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
    """Raised when input/config validation fails."""


class ValidationFailedError(ValidationAppError):
    """One or more field-level violations against a declared schema."""

    def __init__(self, violations: tuple[FieldViolation, ...] | list[FieldViolation]) -> None:
        self.violations = tuple(violations)
        summary = "; ".join(f"{v.field}: {v.message}" for v in self.violations)
        super().__init__(
            code="validation_failed",
            message=f"Validation failed: {summary}",
            details={"violations": [v.as_dict() for v in self.violations]},
        )


class MalformedInputError(ValidationAppError):
    """The raw payload could not be parsed into a structured object."""


class PayloadTooLargeError(ValidationAppError):
    """The request body exceeds the configured size limit."""


class AuthenticationAppError(AppError):
    """Raised when the caller could not be identified."""


class AuthorizationAppError(AppError):
    """Raised when an identified caller may not perform the operation."""


class PaymentAppError(AppError):
    """Raised when the payment provider call fails."""


class ThrottledError(AppError):
    """Raised when a rate limit rejects the request."""

    def __init__(self, decision: RateLimitDecision, *, retry_after: int) -> None:
        self.decision = decision
        self.retry_after = retry_after
        super().__init__(
            code="rate_limited",
            message="Too many requests",
            details={"retry_after": retry_after},
        )
