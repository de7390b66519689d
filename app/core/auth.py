"""Admin session token issuance and verification.

Admin identity travels in an HTTP-only cookie holding an HS256-signed JWT.
``verify_token`` is the only place tokens are decoded; it returns ``None``
for every failure so callers cannot tell a forged token from an expired
one, and the reason is only written to the server log.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Iterable

from fastapi import Request, Response
from jose import JWTError, jwt
from jose.exceptions import ExpiredSignatureError

from app.core.config import settings
from app.core.errors import AuthenticationAppError
from app.core.logging import hash_for_log

logger = logging.getLogger(__name__)

AUTHENTICATION_REQUIRED = "Authentication required"


@dataclass(frozen=True)
class AuthClaims:
    """Verified identity of an admin caller.

    Attributes:
        subject_id: Admin account id.
        email: Admin email at issuance time.
        role: Admin role label (informational; capabilities come from permissions).
        permissions: Granted capabilities, possibly including the wildcard "all".
    """

    subject_id: str
    email: str
    role: str
    permissions: frozenset[str]

    def to_profile(self) -> dict[str, Any]:
        return {
            "id": self.subject_id,
            "email": self.email,
            "role": self.role,
            "permissions": sorted(self.permissions),
        }


def issue_token(
    subject_id: str,
    email: str,
    role: str,
    permissions: Iterable[str],
    *,
    now: float | None = None,
) -> str:
    """Sign a session token valid for the configured TTL.

    Args:
        subject_id: Admin account id (``sub`` claim).
        email: Admin email.
        role: Admin role label.
        permissions: Granted capabilities.
        now: Issuance time override (UNIX seconds).

    Returns:
        Encoded JWT string.
    """
    issued_at = int(time.time() if now is None else now)
    payload = {
        "sub": subject_id,
        "email": email,
        "role": role,
        "permissions": sorted(set(permissions)),
        "iat": issued_at,
        "exp": issued_at + settings.security.token_ttl_seconds,
    }
    return jwt.encode(
        payload,
        settings.security.jwt_secret,
        algorithm=settings.security.jwt_algorithm,
    )


def _claims_from_payload(payload: dict[str, Any]) -> AuthClaims:
    subject_id = payload.get("sub")
    email = payload.get("email")
    if not isinstance(subject_id, str) or not subject_id:
        raise ValueError("missing sub claim")
    if not isinstance(email, str) or not email:
        raise ValueError("missing email claim")

    permissions = payload.get("permissions") or []
    if not isinstance(permissions, list) or not all(isinstance(p, str) for p in permissions):
        raise ValueError("permissions claim must be a list of strings")

    role = payload.get("role") or "admin"
    if not isinstance(role, str):
        raise ValueError("role claim must be a string")

    return AuthClaims(
        subject_id=subject_id,
        email=email,
        role=role,
        permissions=frozenset(permissions),
    )


def verify_token(raw_token: str | None) -> AuthClaims | None:
    """Verify a session token and extract its claims.

    Never raises: bad signature, malformed payload, unexpected algorithm and
    expiry all yield ``None``.

    Args:
        raw_token: Token string from the session cookie, or None.

    Returns:
        AuthClaims when the token was signed with the configured secret and
        has not expired, otherwise None.
    """
    if not raw_token:
        return None

    try:
        payload = jwt.decode(
            raw_token,
            settings.security.jwt_secret,
            algorithms=[settings.security.jwt_algorithm],
            options={"require_exp": True, "require_sub": True},
        )
        return _claims_from_payload(payload)
    except ExpiredSignatureError:
        reason = "expired"
    except JWTError as exc:
        reason = type(exc).__name__
    except (ValueError, TypeError) as exc:
        reason = f"malformed_claims: {exc}"

    logger.warning(
        "auth.token_invalid",
        extra={"reason": reason, "token_fingerprint": hash_for_log(raw_token)},
    )
    return None


def get_session_token(request: Request) -> str | None:
    """Read the session token from the admin cookie."""

    return request.cookies.get(settings.security.cookie_name)


def set_session_cookie(response: Response, token: str) -> None:
    """Attach the session cookie to a login response."""

    response.set_cookie(
        key=settings.security.cookie_name,
        value=token,
        max_age=settings.security.token_ttl_seconds,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def clear_session_cookie(response: Response) -> None:
    """Expire the session cookie on logout."""

    response.set_cookie(
        key=settings.security.cookie_name,
        value="",
        max_age=0,
        path="/",
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
    )


def authenticate_request(request: Request) -> AuthClaims:
    """Resolve the caller identity or raise 401.

    Raises:
        AuthenticationAppError: If the cookie is missing or fails verification.
    """
    token = get_session_token(request)
    claims = verify_token(token)
    if claims is None:
        logger.info(
            "auth.rejected",
            extra={
                "token_present": bool(token),
                "route": request.url.path,
                "method": request.method,
            },
        )
        raise AuthenticationAppError(
            code="authentication_required",
            message=AUTHENTICATION_REQUIRED,
        )

    request.state.admin = claims
    return claims


async def get_current_admin(request: Request) -> AuthClaims:
    """FastAPI dependency returning the verified admin identity.

    Usage:
        @router.get("/protected")
        async def protected(admin: AuthClaims = Depends(get_current_admin)):
            ...

    Raises:
        AuthenticationAppError: 401 if the session cookie is missing or invalid.
    """
    return authenticate_request(request)
