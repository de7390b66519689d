"""CORS and protective response headers.

Headers are computed from the request alone so the same set decorates
preflight answers, handler responses and every rejection.
"""

from __future__ import annotations

from fastapi import Request

from app.core.config import settings

ALLOWED_METHODS = "GET, POST, PUT, PATCH, DELETE, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization, X-Requested-With"

HSTS_VALUE = "max-age=31536000; includeSubDomains; preload"

CONTENT_SECURITY_POLICY = "; ".join(
    [
        "default-src 'self'",
        "script-src 'self' 'unsafe-inline' 'unsafe-eval' "
        "https://www.googletagmanager.com https://connect.facebook.net",
        "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com https://cdn.tailwindcss.com",
        "font-src 'self' https://fonts.gstatic.com",
        "img-src 'self' data: https: blob:",
        "connect-src 'self' https://*.supabase.co https://www.google-analytics.com "
        "https://analytics.google.com https://www.facebook.com",
        "frame-src 'none'",
        "object-src 'none'",
        "base-uri 'self'",
    ]
)


def resolve_allowed_origin(origin: str | None) -> str | None:
    """Return origin if it is allow-listed, else None.

    Credentialed CORS forbids a wildcard, so a non-matching origin simply gets
    no Access-Control-Allow-Origin header.
    """
    if not origin:
        return None
    if origin in settings.security.allowed_origin_list:
        return origin
    return None


def is_secure_request(request: Request) -> bool:
    """True when the request arrived over HTTPS (directly or via the edge proxy)."""

    if request.url.scheme == "https":
        return True
    if settings.security.trust_proxy_headers:
        proto = request.headers.get("x-forwarded-proto", "")
        return proto.split(",")[0].strip().lower() == "https"
    return False


def build_security_headers(request: Request) -> dict[str, str]:
    """Compute the CORS and security headers for a request."""

    headers = {
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Allow-Methods": ALLOWED_METHODS,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
        "X-Frame-Options": "DENY",
        "X-Content-Type-Options": "nosniff",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "X-XSS-Protection": "1; mode=block",
        "Content-Security-Policy": CONTENT_SECURITY_POLICY,
        "Vary": "Origin",
    }

    allowed_origin = resolve_allowed_origin(request.headers.get("origin"))
    if allowed_origin:
        headers["Access-Control-Allow-Origin"] = allowed_origin

    if is_secure_request(request):
        headers["Strict-Transport-Security"] = HSTS_VALUE

    return headers
