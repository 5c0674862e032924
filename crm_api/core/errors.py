"""Application-level exception types.

This module defines domain errors used across routes, middleware and
adapters, enabling consistent error handling, logging, and API responses.
Each subclass carries the HTTP status it maps to.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, NotRequired, TypedDict

if TYPE_CHECKING:
    from crm_api.adapters.rate_limit.base import RateLimitResult


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep the shape stable across the codebase.
    """

    code: str
    message: str
    hint: str
    errors: list[dict[str, str]]
    resource: str
    resource_id: str
    http_status: int
    retry_after: float
    tier: str
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

    status_code = 400

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when request input fails schema validation."""


class AuthenticationAppError(AppError):
    """Raised when the bearer credential is missing or invalid."""

    status_code = 401


class MissingOrganizationAppError(AppError):
    """Raised when an authenticated user has no organization."""

    status_code = 400


class ForbiddenAppError(AppError):
    """Raised when the caller lacks the required role."""

    status_code = 403


class NotFoundAppError(AppError):
    """Raised when a tenant-scoped record does not exist."""

    status_code = 404


@dataclass
class RateLimitAppError(AppError):
    """Raised when a rate limit tier denies the request.

    ``error`` is the short label rendered in the 429 body; ``result`` holds
    the quota snapshot used for the Retry-After and X-RateLimit-* headers.
    """

    error: str = "Rate limit exceeded"
    result: "RateLimitResult | None" = None

    status_code = 429


@dataclass
class DataAccessAppError(AppError):
    """Raised when the external data store rejects or fails an operation.

    ``safe`` marks the store message as fit for clients; otherwise a
    generic message is returned.
    """

    safe: bool = False

    status_code = 500


class InternalAppError(AppError):
    """Raised when an unexpected failure is converted at a boundary."""

    status_code = 500


INTERNAL_ERROR_MESSAGE = "Internal server error"


def internal_error() -> InternalAppError:
    """Build the generic 500 error used when internals must not leak."""
    return InternalAppError(code="internal_server_error", message=INTERNAL_ERROR_MESSAGE)

