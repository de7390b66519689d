"""HTTP middleware for request correlation and response hardening.

This module provides:
- ``request_id_middleware``: accepts or generates a request id, stores it in
  contextvars for log correlation and echoes it on the response.
- ``security_headers_middleware``: the outer admission stage. Answers
  preflight requests directly and decorates every other response (success,
  rejection or unexpected failure) with CORS and security headers.

Usage:
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from app.core.config import settings
from app.core.exception_handlers import general_exception_handler
from app.core.logging import clear_request_id, set_request_id
from app.core.security_headers import build_security_headers


async def request_id_middleware(request: Request, call_next) -> Response:
    """HTTP middleware for request ID generation and propagation.

    If the client provides an X-Request-ID header (configurable via
    LOG_REQUEST_ID_HEADER), that value is used. Otherwise, a new UUID
    is generated. The ID is then propagated back in the response headers
    and stored in contextvars for log correlation.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The response from the next handler with request_id and
            duration headers added.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    duration_ms = (time.perf_counter() - start) * 1000
    response.headers[header_name] = request_id
    response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
    return response


async def security_headers_middleware(request: Request, call_next) -> Response:
    """Apply CORS/security headers and short-circuit preflight.

    ``OPTIONS`` requests are answered 200 here and never reach rate limiting,
    authentication or the route. Exceptions escaping the route are turned into
    the generic 500 response so they are decorated like any other response.
    """

    headers = build_security_headers(request)

    if request.method == "OPTIONS":
        return Response(status_code=200, headers=headers)

    try:
        response: Response = await call_next(request)
    except Exception as exc:
        response = await general_exception_handler(request, exc)

    for name, value in headers.items():
        response.headers[name] = value
    return response
