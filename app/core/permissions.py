"""Capability checks for admin routes.

``require_permission`` composes the admission stages in their only valid
order: rate limit, then identity, then capability. A request without a
verified identity is answered 401 before any capability is looked at.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import Request

from app.core.auth import AuthClaims, authenticate_request
from app.core.errors import AuthorizationAppError
from app.core.rate_limit import ADMIN_API_POLICY, check_rate_limit

logger = logging.getLogger(__name__)

WILDCARD_PERMISSION = "all"

READ_LEADS = "read_leads"
WRITE_LEADS = "write_leads"
DELETE_LEADS = "delete_leads"
READ_AFFILIATES = "read_affiliates"
WRITE_AFFILIATES = "write_affiliates"
ADMIN_SETTINGS = "admin_settings"

KNOWN_PERMISSIONS = frozenset(
    {
        WILDCARD_PERMISSION,
        READ_LEADS,
        WRITE_LEADS,
        DELETE_LEADS,
        READ_AFFILIATES,
        WRITE_AFFILIATES,
        ADMIN_SETTINGS,
    }
)

INSUFFICIENT_PERMISSIONS = "Insufficient permissions"


def authorize(claims: AuthClaims | None, required_permission: str) -> bool:
    """Return True when claims grant required_permission.

    Examples:
        >>> authorize(None, "read_leads")
        False
    """
    if claims is None:
        return False
    return (
        WILDCARD_PERMISSION in claims.permissions
        or required_permission in claims.permissions
    )


def require_permission(
    permission: str,
    *,
    policy: str = ADMIN_API_POLICY,
) -> Callable[[Request], Awaitable[AuthClaims]]:
    """Build a dependency guarding a route with rate limit, auth and capability.

    Usage:
        @router.delete("/leads/{lead_id}")
        async def delete_lead(admin: AuthClaims = Depends(require_permission(DELETE_LEADS))):
            ...

    Args:
        permission: Capability the caller must hold (or "all").
        policy: Rate limit policy applied before authentication.

    Returns:
        Dependency resolving to the verified AuthClaims.
    """
    if permission not in KNOWN_PERMISSIONS:
        raise ValueError(f"Unknown permission: {permission!r}")

    async def _guard(request: Request) -> AuthClaims:
        check_rate_limit(request, policy)
        claims = authenticate_request(request)

        if not authorize(claims, permission):
            logger.warning(
                "permission.denied",
                extra={
                    "subject_id": claims.subject_id,
                    "required_permission": permission,
                    "route": request.url.path,
                    "method": request.method,
                },
            )
            raise AuthorizationAppError(
                code="insufficient_permissions",
                message=INSUFFICIENT_PERMISSIONS,
            )
        return claims

    _guard.__name__ = f"require_{permission}"
    return _guard


def require_admin(*, policy: str = ADMIN_API_POLICY) -> Callable[[Request], Awaitable[AuthClaims]]:
    """Build a dependency admitting any verified admin (no capability check)."""

    async def _guard(request: Request) -> AuthClaims:
        check_rate_limit(request, policy)
        return authenticate_request(request)

    return _guard
