"""Tests for global exception handlers.

Validates that all exception types are handled consistently with
proper HTTP status codes, error format, and no information leakage.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.errors import (
    AccountLockedAppError,
    AppError,
    AuthenticationAppError,
    AuthorizationAppError,
    ConflictAppError,
    NotFoundAppError,
    RateLimitAppError,
    StorageAppError,
    ValidationAppError,
)
from app.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    """Create FastAPI app with exception handlers registered."""
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    """Create test client with handlers enabled."""
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        "error_cls, status_code",
        [
            (ValidationAppError, 400),
            (AuthenticationAppError, 401),
            (AuthorizationAppError, 403),
            (NotFoundAppError, 404),
            (ConflictAppError, 409),
            (AccountLockedAppError, 423),
            (StorageAppError, 500),
        ],
    )
    def test_status_mapping(self, client: TestClient, app_with_handlers: FastAPI, error_cls, status_code):
        """Verify each domain error maps to its HTTP status."""
        @app_with_handlers.get("/test-error")
        async def test_endpoint():
            raise error_cls(code="some_code", message="Client message")

        response = client.get("/test-error")

        assert response.status_code == status_code
        assert response.json() == {"success": False, "error": "Client message"}

    def test_error_code_is_not_sent(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify the internal error code stays in logs only."""
        @app_with_handlers.get("/test-code")
        async def test_endpoint():
            raise AuthorizationAppError(code="insufficient_permissions", message="Insufficient permissions")

        response = client.get("/test-code")

        assert "insufficient_permissions" not in response.text

    def test_validation_error_includes_details(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify ValidationAppError includes details when provided."""
        @app_with_handlers.get("/test-validation-details")
        async def test_endpoint():
            raise ValidationAppError(
                code="bad_filter",
                message="Invalid input data",
                details={"field": "startDate", "hint": "ISO 8601"},
            )

        response = client.get("/test-validation-details")

        assert response.status_code == 400
        assert response.json()["details"] == {"field": "startDate", "hint": "ISO 8601"}

    def test_rate_limit_error_shape(self, client: TestClient, app_with_handlers: FastAPI):
        """Verify 429 carries retryAfter and the advertised headers."""
        @app_with_handlers.get("/test-rate-limit")
        async def test_endpoint():
            raise RateLimitAppError(
                code="rate_limit_exceeded",
                message="Too many requests",
                retry_after=42,
                limit=5,
                reset_at=1700000000,
                headers={"Retry-After": "42", "X-RateLimit-Limit": "5"},
            )

        response = client.get("/test-rate-limit")

        assert response.status_code == 429
        assert response.json() == {"success": False, "error": "Too many requests", "retryAfter": 42}
        assert response.headers["Retry-After"] == "42"
        assert response.headers["X-RateLimit-Limit"] == "5"


class TestRequestValidation:
    def test_body_validation_returns_400_with_field_messages(self, client: TestClient, app_with_handlers: FastAPI):
        from pydantic import BaseModel

        class Payload(BaseModel):
            name: str
            count: int

        @app_with_handlers.post("/test-body")
        async def test_endpoint(payload: Payload):
            return {"ok": True}

        response = client.post("/test-body", json={"name": "x", "count": "many"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "Invalid input data"
        assert len(body["details"]) == 1
        assert body["details"][0].startswith("count:")

    def test_unknown_route_uses_shared_shape(self, client: TestClient):
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Not Found"}


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_exception_handler_registered(self, app_with_handlers: FastAPI):
        """Verify fallback exception handler is registered."""
        assert Exception in app_with_handlers.exception_handlers

    def test_general_exception_handler_logic(self):
        """Verify general_exception_handler returns correct structure."""
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = RuntimeError("Unexpected error: database connection failed")
        response = asyncio.run(general_exception_handler(request, exc))

        data = json.loads(bytes(response.body).decode())
        assert response.status_code == 500
        assert data == {"success": False, "error": "Internal server error"}

    def test_general_exception_handler_never_leaks_stack_trace(self):
        """Verify stack traces are never included in response."""
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        exc = ValueError("Test error with details")
        response = asyncio.run(general_exception_handler(request, exc))

        response_text = bytes(response.body).decode()
        assert "Traceback" not in response_text
        assert "File \"" not in response_text
        assert "ValueError" not in response_text


class TestErrorHandlerIntegration:
    """Integration tests for exception handler setup."""

    def test_setup_exception_handlers_registers_handlers(self, app_with_handlers: FastAPI):
        """Verify setup_exception_handlers properly registers handlers."""
        assert AppError in app_with_handlers.exception_handlers
        assert Exception in app_with_handlers.exception_handlers

    def test_multiple_handler_setups_does_not_fail(self):
        """Verify calling setup_exception_handlers multiple times is safe."""
        app = FastAPI()

        setup_exception_handlers(app)
        setup_exception_handlers(app)

        assert AppError in app.exception_handlers
