"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers) so
tests can build a fresh app per case.
"""

from __future__ import annotations

from fastapi import FastAPI

from app.api.routes import admin_router, health_router, leads_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware, security_headers_middleware
from app.core.openapi import apply_openapi_customizations


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Middleware registered last runs first: the request id is assigned
    before the security header stage, which in turn wraps the rate limit,
    session and permission dependencies of each route.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title=settings.app.title,
        description=(
            "Lead intake and admin back office for EdgeVantage. Public lead "
            "submission is rate limited; admin routes require the admin-token "
            "session cookie and the matching permission."
        ),
        version="0.1.0",
        debug=settings.app.debug,
    )

    # Middleware
    app.middleware("http")(security_headers_middleware)
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(health_router)
    app.include_router(admin_router)
    app.include_router(leads_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
