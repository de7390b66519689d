from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from app.api.body import json_body_openapi, parse_json_body
from app.api.dependencies import get_auth_service
from app.core.auth import AuthClaims, clear_session_cookie, set_session_cookie
from app.core.permissions import require_admin
from app.core.rate_limit import ADMIN_API_POLICY, AUTH_POLICY, enforce_rate_limit
from app.schemas.admin import LoginRequest
from app.services.auth_service import AuthService

router = APIRouter(prefix="/api/admin", tags=["Admin"])


@router.post(
    "/auth",
    dependencies=[Depends(enforce_rate_limit(AUTH_POLICY))],
    openapi_extra=json_body_openapi(LoginRequest),
)
async def login(
    request: Request,
    response: Response,
    service: AuthService = Depends(get_auth_service),
) -> dict:
    """Admin login.

    Verifies the credentials, sets the ``admin-token`` session cookie and
    returns the admin profile. Five failed attempts lock the account for
    fifteen minutes (423).
    """
    payload = await parse_json_body(request, LoginRequest)
    profile, token = await service.login(payload.email, payload.password)
    set_session_cookie(response, token)
    return {
        "success": True,
        "data": {"admin": profile.model_dump(mode="json")},
        "message": "Login successful",
    }


@router.delete(
    "/auth",
    dependencies=[Depends(enforce_rate_limit(ADMIN_API_POLICY))],
)
async def logout(response: Response) -> dict:
    """Clear the session cookie. Succeeds whether or not a session exists."""
    clear_session_cookie(response)
    return {"success": True, "message": "Logged out successfully"}


@router.get("/verify")
async def verify_session(admin: AuthClaims = Depends(require_admin())) -> dict:
    """Return the identity carried by the current session cookie."""
    return {"success": True, "data": {"admin": admin.to_profile()}}
