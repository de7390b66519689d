"""Rate limiting dependencies for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Minimal coupling: API routes depend on a dependency function only.
- Swap-friendly: storage backend can be replaced (e.g., Redis) behind
  ``AbstractRateLimitStore``.
- One named policy per endpoint class (login, lead submission, admin API).

Rate limiting strategy:
- Window per client, started by the client's first request.
- Client identity is the caller address combined with a truncated
  user-agent; collisions only share quota.
"""

from __future__ import annotations

import logging
import threading
from typing import Awaitable, Callable

from fastapi import Request

from app.adapters.rate_limit.base import (
    AbstractRateLimiter,
    AbstractRateLimitStore,
    RateLimitPolicy,
    RateLimitResult,
)
from app.adapters.rate_limit.in_memory import InMemoryRateLimiter, InMemoryRateLimitStore
from app.core.config import settings
from app.core.errors import RateLimitAppError
from app.core.logging import hash_for_log

logger = logging.getLogger(__name__)

AUTH_POLICY = "auth"
LEAD_SUBMISSION_POLICY = "lead_submission"
ADMIN_API_POLICY = "admin_api"
STRICT_POLICY = "strict"

USER_AGENT_MAX_CHARS = 50


def build_policies() -> dict[str, RateLimitPolicy]:
    """Build the named policies from current settings."""

    cfg = settings.rate_limit
    return {
        AUTH_POLICY: RateLimitPolicy(AUTH_POLICY, cfg.auth_window_seconds, cfg.auth_max_requests),
        LEAD_SUBMISSION_POLICY: RateLimitPolicy(
            LEAD_SUBMISSION_POLICY, cfg.lead_window_seconds, cfg.lead_max_requests
        ),
        ADMIN_API_POLICY: RateLimitPolicy(
            ADMIN_API_POLICY, cfg.admin_window_seconds, cfg.admin_max_requests
        ),
        STRICT_POLICY: RateLimitPolicy(STRICT_POLICY, cfg.strict_window_seconds, cfg.strict_max_requests),
    }


class RateLimiterRegistry:
    """Process-wide limiters sharing one store and one lock.

    Limiters are rebuilt when the policy values change (primarily in tests).
    """

    def __init__(self, store: AbstractRateLimitStore | None = None) -> None:
        self._store = store if store is not None else InMemoryRateLimitStore()
        self._lock = threading.Lock()
        self._limiters: dict[str, AbstractRateLimiter] = {}

    @property
    def store(self) -> AbstractRateLimitStore:
        return self._store

    def get(self, policy_name: str) -> AbstractRateLimiter:
        policy = build_policies()[policy_name]
        limiter = self._limiters.get(policy_name)
        if limiter is None or limiter.policy != policy:
            limiter = InMemoryRateLimiter(policy, store=self._store, lock=self._lock)
            self._limiters[policy_name] = limiter
        return limiter

    def reset(self, store: AbstractRateLimitStore | None = None) -> None:
        """Drop all counters, optionally switching to a new store."""
        self._store = store if store is not None else InMemoryRateLimitStore()
        self._limiters.clear()


_registry = RateLimiterRegistry()


def get_rate_limiter(policy_name: str) -> AbstractRateLimiter:
    """Return the process-wide limiter for a named policy."""

    return _registry.get(policy_name)


def reset_rate_limits(store: AbstractRateLimitStore | None = None) -> None:
    """Clear all rate limit state (tests, admin tooling)."""

    _registry.reset(store)


def get_client_ip(request: Request) -> str:
    """Resolve the caller address, honoring proxy headers when trusted."""

    if settings.security.trust_proxy_headers:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            first = forwarded.split(",")[0].strip()
            if first:
                return first
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip.strip()

    return request.client.host if request.client else "unknown"


def build_client_identifier(request: Request) -> str:
    """Build the limiter key for the current request.

    Returns:
        str: ``"<ip>-<user-agent truncated to 50 chars>"``.
    """

    user_agent = request.headers.get("user-agent", "")
    return f"{get_client_ip(request)}-{user_agent[:USER_AGENT_MAX_CHARS]}"


def build_rate_limit_headers(result: RateLimitResult) -> dict[str, str]:
    """Headers advertised on a throttled response."""

    return {
        "Retry-After": str(result.retry_after_seconds or 0),
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": "0",
        "X-RateLimit-Reset": str(result.reset_at),
    }


def check_rate_limit(request: Request, policy_name: str) -> RateLimitResult | None:
    """Consume one request from the caller's budget under policy_name.

    Returns:
        The limiter result, or None when rate limiting is disabled.

    Raises:
        RateLimitAppError: When the caller exceeded the policy.
    """

    if not settings.rate_limit.enabled:
        return None

    limiter = get_rate_limiter(policy_name)
    client_id = build_client_identifier(request)
    key_hash = hash_for_log(client_id)

    result = limiter.check(client_id)
    if result.allowed:
        logger.debug(
            "rate_limit.allowed",
            extra={
                "policy": policy_name,
                "key_hash": key_hash,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return result

    retry_after = result.retry_after_seconds or 1
    logger.warning(
        "rate_limit.exceeded",
        extra={
            "policy": policy_name,
            "key_hash": key_hash,
            "limit": result.limit,
            "window_s": limiter.policy.window_seconds,
            "retry_after_s": retry_after,
            "route": request.url.path,
        },
    )

    headers = build_rate_limit_headers(result) if settings.rate_limit.include_headers else {}
    raise RateLimitAppError(
        code="rate_limit_exceeded",
        message="Too many requests",
        retry_after=retry_after,
        limit=result.limit,
        reset_at=result.reset_at,
        headers=headers,
    )


def enforce_rate_limit(policy_name: str) -> Callable[[Request], Awaitable[None]]:
    """Build a FastAPI dependency enforcing the named policy.

    Usage:
        @router.post("/leads", dependencies=[Depends(enforce_rate_limit(LEAD_SUBMISSION_POLICY))])
    """

    if policy_name not in build_policies():
        raise ValueError(f"Unknown rate limit policy: {policy_name!r}")

    async def _enforce(request: Request) -> None:
        check_rate_limit(request, policy_name)

    _enforce.__name__ = f"enforce_{policy_name}_rate_limit"
    return _enforce
