"""Tests for the capability gate and its ordering with identity and rate limiting."""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from app.core.auth import AuthClaims
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.permissions import (
    DELETE_LEADS,
    READ_LEADS,
    WRITE_LEADS,
    authorize,
    require_admin,
    require_permission,
)


def _claims(*permissions: str) -> AuthClaims:
    return AuthClaims(
        subject_id="admin-1",
        email="ops@example.com",
        role="admin",
        permissions=frozenset(permissions),
    )


class TestAuthorize:
    """Pure permission decision."""

    def test_wildcard_grants_everything(self) -> None:
        claims = _claims("all")
        assert authorize(claims, READ_LEADS)
        assert authorize(claims, DELETE_LEADS)
        assert authorize(claims, "admin_settings")

    def test_specific_permission_granted(self) -> None:
        assert authorize(_claims(READ_LEADS), READ_LEADS)

    def test_missing_permission_denied(self) -> None:
        assert not authorize(_claims(READ_LEADS), DELETE_LEADS)

    def test_empty_permissions_denied(self) -> None:
        assert not authorize(_claims(), READ_LEADS)

    def test_no_identity_denied(self) -> None:
        assert not authorize(None, READ_LEADS)

    def test_permission_names_are_case_sensitive(self) -> None:
        assert not authorize(_claims("READ_LEADS"), READ_LEADS)


def test_unknown_permission_rejected_at_route_definition() -> None:
    with pytest.raises(ValueError):
        require_permission("read_everything")


@pytest.fixture
def guarded_client() -> TestClient:
    app = FastAPI()
    setup_exception_handlers(app)

    @app.get("/leads")
    async def list_leads(admin: AuthClaims = Depends(require_permission(READ_LEADS))):
        return {"admin": admin.subject_id}

    @app.patch("/leads")
    async def update_leads(admin: AuthClaims = Depends(require_permission(WRITE_LEADS))):
        return {"admin": admin.subject_id}

    @app.get("/me")
    async def me(admin: AuthClaims = Depends(require_admin())):
        return {"admin": admin.subject_id}

    return TestClient(app)


class TestGuardedRoutes:
    """Rate limit, then identity, then capability."""

    def test_no_cookie_is_401_not_403(self, guarded_client: TestClient) -> None:
        response = guarded_client.get("/leads")

        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Authentication required"}

    def test_invalid_cookie_is_401(self, guarded_client: TestClient) -> None:
        guarded_client.cookies.set("admin-token", "forged")

        response = guarded_client.get("/leads")

        assert response.status_code == 401

    def test_missing_capability_is_403(self, guarded_client: TestClient, token_factory) -> None:
        guarded_client.cookies.set("admin-token", token_factory(READ_LEADS))

        response = guarded_client.patch("/leads")

        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Insufficient permissions"}

    def test_specific_capability_allowed(self, guarded_client: TestClient, token_factory) -> None:
        guarded_client.cookies.set("admin-token", token_factory(READ_LEADS))

        response = guarded_client.get("/leads")

        assert response.status_code == 200
        assert response.json() == {"admin": "admin-1"}

    def test_wildcard_allowed(self, guarded_client: TestClient, token_factory) -> None:
        guarded_client.cookies.set("admin-token", token_factory("all"))

        assert guarded_client.patch("/leads").status_code == 200

    def test_require_admin_needs_identity_only(self, guarded_client: TestClient, token_factory) -> None:
        assert guarded_client.get("/me").status_code == 401

        guarded_client.cookies.set("admin-token", token_factory())
        assert guarded_client.get("/me").status_code == 200

    def test_rate_limit_applies_before_identity(self, guarded_client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(settings.rate_limit, "admin_max_requests", 2)

        assert guarded_client.get("/leads").status_code == 401
        assert guarded_client.get("/leads").status_code == 401
        response = guarded_client.get("/leads")

        assert response.status_code == 429
        assert response.json()["error"] == "Too many requests"

    def test_rate_limit_switch_disables_throttling(self, guarded_client: TestClient, monkeypatch) -> None:
        monkeypatch.setattr(settings.rate_limit, "admin_max_requests", 1)
        monkeypatch.setattr(settings.rate_limit, "enabled", False)

        statuses = [guarded_client.get("/leads").status_code for _ in range(3)]

        assert statuses == [401, 401, 401]
