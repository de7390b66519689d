"""OpenAPI customization.

Adds the ``admin-token`` cookie security scheme, marks every operation as
requiring it, and exempts the public routes (health, login, logout and
lead submission) by setting ``security: []``.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

from app.core.config import settings

PUBLIC_OPERATIONS = frozenset(
    {
        ("/health", "get"),
        ("/api/admin/auth", "post"),
        ("/api/admin/auth", "delete"),
        ("/api/leads", "post"),
    }
)

TAGS = [
    {"name": "Admin", "description": "Admin session login, logout and verification."},
    {"name": "Leads", "description": "Public lead submission and lead administration."},
    {"name": "Health", "description": "Liveness checks."},
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add the session cookie scheme and tags."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "AdminSession",
            {
                "type": "apiKey",
                "in": "cookie",
                "name": settings.security.cookie_name,
                "description": "Session cookie set by POST /api/admin/auth.",
            },
        )
        schema.setdefault("security", [{"AdminSession": []}])

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            for method, method_obj in methods.items():
                if (path, method) in PUBLIC_OPERATIONS and isinstance(method_obj, dict):
                    method_obj["security"] = []

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
