"""Rate limiter interfaces.

The API depends on these abstractions (not the concrete implementation) so
the counter storage can move to a shared store (e.g., Redis) when the
service runs as more than one process.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitPolicy:
    """Immutable rate limit policy for one class of endpoints.

    Attributes:
        name: Policy name, also used to namespace storage keys.
        window_seconds: Window length, started by the client's first request.
        max_requests: Requests admitted per window.
    """

    name: str
    window_seconds: int
    max_requests: int

    def __post_init__(self) -> None:
        if self.max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if self.window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")


@dataclass
class RateLimitEntry:
    """Counter for one client within its current window."""

    count: int
    reset_at: float


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Max requests per window.
        remaining: Remaining requests in the current window (0 when blocked).
        reset_at: UNIX epoch seconds when the current window resets.
        retry_after_seconds: Suggested wait time in seconds when blocked.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_at: int
    retry_after_seconds: int | None


class AbstractRateLimitStore(ABC):
    """Key/value storage for rate limit entries with per-key expiry."""

    @abstractmethod
    def get(self, key: str) -> RateLimitEntry | None:
        """Return the entry stored under key, or None."""
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, entry: RateLimitEntry) -> None:
        """Store entry under key; it expires at ``entry.reset_at``."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present."""
        raise NotImplementedError

    @abstractmethod
    def purge_expired(self, now: float) -> int:
        """Drop entries whose ``reset_at`` is before now.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError


class AbstractRateLimiter(ABC):
    """Interface for rate limiters bound to a single policy."""

    policy: RateLimitPolicy

    @abstractmethod
    def check(self, client_id: str, *, now: float | None = None) -> RateLimitResult:
        """Admit or reject one request for client_id.

        Args:
            client_id: Client identifier (see ``build_client_identifier``).
            now: Optional UNIX time override; defaults to the limiter clock.

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError
