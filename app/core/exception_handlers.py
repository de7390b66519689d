"""Global exception handlers for consistent error responses.

This module provides FastAPI exception handlers that intercept all errors
(domain and unexpected) and return consistent JSON responses with proper
HTTP status codes.

Design:
- AppError subclasses → mapped HTTP status, body ``{success: false, error}``
- RateLimitAppError → 429 with ``retryAfter`` and X-RateLimit-* headers
- Request validation → 400 with field-level details
- Unexpected Exception → generic 500 (safety net)
- Clients only see the generic message; the error code and context go to logs
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

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
from app.core.logging import get_request_id

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ValidationAppError, 400),
    (AuthenticationAppError, 401),
    (AuthorizationAppError, 403),
    (NotFoundAppError, 404),
    (ConflictAppError, 409),
    (AccountLockedAppError, 423),
    (RateLimitAppError, 429),
    (StorageAppError, 500),
)


def status_for_error(exc: AppError) -> int:
    """Resolve the HTTP status for a domain error (400 when unmapped)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 400


def error_response(status_code: int, message: str, **extra) -> JSONResponse:
    """Build the ``{success: false, error: ...}`` body shared by all rejections."""
    content = {"success": False, "error": message}
    headers = extra.pop("headers", None)
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and generic message.
    """
    status_code = status_for_error(exc)

    log = logger.error if status_code >= 500 else logger.info
    log(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "route": request.url.path,
            "method": request.method,
            "request_id": get_request_id(),
        },
    )

    if isinstance(exc, RateLimitAppError):
        return error_response(
            status_code,
            exc.message,
            retryAfter=exc.retry_after,
            headers=exc.headers or None,
        )

    if isinstance(exc, ValidationAppError) and exc.details:
        return error_response(status_code, exc.message, details=exc.details)

    return error_response(status_code, exc.message)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request body/query validation failures as 400.

    Returns a flat list of ``"<field>: <message>"`` strings.
    """
    errors = []
    for error in exc.errors():
        field = ".".join(str(x) for x in error["loc"] if x not in ("body", "query")) or "body"
        errors.append(f"{field}: {error['msg']}")

    logger.info(
        "request_validation_failed",
        extra={
            "route": request.url.path,
            "error_count": len(errors),
            "request_id": get_request_id(),
        },
    )
    return error_response(400, "Invalid input data", details=errors)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle framework HTTP errors (404 route, 405 method) in the shared shape."""
    return error_response(
        exc.status_code,
        str(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs detailed information for debugging while returning generic message.
    Prevents information leakage (no stack traces to client).

    Args:
        request: FastAPI request object.
        exc: Exception instance (unexpected).

    Returns:
        JSONResponse with generic error (no implementation details leaked).
    """
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={
            "error_type": type(exc).__name__,
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )
    return error_response(500, "Internal server error")


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Must be called during app initialization, before route registration.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
