"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and API responses. Each subclass maps to
one HTTP status in ``app.core.exception_handlers``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    field: str
    http_status: int
    retry_after: int
    limit: int
    reset_at: int
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code (logged, never sent).
        message: Client-visible message.
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


class AuthenticationAppError(AppError):
    """Raised when no verified identity is attached to the request."""


class AuthorizationAppError(AppError):
    """Raised when a verified identity lacks the required capability."""


class NotFoundAppError(AppError):
    """Raised when a requested record does not exist."""


class ConflictAppError(AppError):
    """Raised when a write would duplicate an existing record."""


class AccountLockedAppError(AppError):
    """Raised when an admin account is temporarily locked."""


class StorageAppError(AppError):
    """Raised when the backing store fails."""


@dataclass
class RateLimitAppError(AppError):
    """Raised when a client exceeded its rate limit policy.

    Attributes:
        retry_after: Seconds until the client's window resets.
        limit: Max requests per window of the violated policy.
        reset_at: UNIX epoch seconds when the window resets.
        headers: Response headers advertising the limit.
    """

    retry_after: int = 1
    limit: int = 0
    reset_at: int = 0
    headers: dict[str, str] = field(default_factory=dict)
