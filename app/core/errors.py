"""Application-level exception types.

Local precondition failures (missing input, exhausted quota) are raised
before the registry is contacted. Upstream failures are classified by the
registry client into the ``UpstreamAppError`` family so the workflow and the
HTTP layer can handle them uniformly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    inn: str
    kind: str
    required: int
    requests_used_today: int
    remaining_requests: int
    http_status: int
    upstream_message: str


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

    def with_usage(self, used: int, remaining: int) -> "AppError":
        """Attach the caller's quota figures to this error and return it."""
        details: ErrorDetails = dict(self.details or {})  # type: ignore[assignment]
        details["requests_used_today"] = used
        details["remaining_requests"] = remaining
        self.details = details
        return self


class MissingInputError(AppError):
    """Raised when the credential or entity identifier is absent."""


class QuotaExceededError(AppError):
    """Raised when the local daily quota cannot cover the requested calls."""


class UpstreamAppError(AppError):
    """Base for failures reported by (or on the way to) the registry."""


class InvalidCredentialError(UpstreamAppError):
    """The registry rejected the credential."""


class NotFoundError(UpstreamAppError):
    """The registry has no data for the entity and lookup kind."""


class UpstreamRateLimitedError(UpstreamAppError):
    """The registry enforced its own rate limit."""


class AccessDeniedError(UpstreamAppError):
    """The credential lacks permission (e.g. zero balance)."""


class UpstreamError(UpstreamAppError):
    """Any other non-success registry response."""


class TransportFailureError(UpstreamAppError):
    """Network or connection failure before any response arrived."""
