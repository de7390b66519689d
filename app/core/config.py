"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file and os.getenv("TESTING") != "true":
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


DEFAULT_ALLOWED_ORIGINS = (
    "https://edgevantagepro.com,"
    "https://www.edgevantagepro.com,"
    "http://localhost:3000,"
    "http://127.0.0.1:3000"
)


def parse_csv(value: str | None) -> list[str]:
    """Split a comma-separated setting into trimmed, non-empty items.

    Examples:
        >>> parse_csv("a, b ,,c")
        ['a', 'b', 'c']
        >>> parse_csv(None)
        []
    """
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    title: str = Field(
        "EdgeVantage API",
        description="Service name shown in OpenAPI docs and logs",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class SecuritySettings(BaseSettings):
    """Token signing, session cookie and CORS configuration."""

    jwt_secret: str = Field(
        ...,
        min_length=16,
        description="Shared secret used to sign and verify admin session tokens",
    )
    jwt_algorithm: str = Field(
        "HS256",
        description="JWS algorithm for admin session tokens",
    )
    token_ttl_hours: int = Field(
        24,
        description="Validity of an issued admin session token, in hours",
        ge=1,
    )
    cookie_name: str = Field(
        "admin-token",
        description="Name of the HTTP-only cookie carrying the admin session token",
    )
    allowed_origins: str = Field(
        DEFAULT_ALLOWED_ORIGINS,
        description="Comma-separated list of origins allowed to read credentialed responses",
    )
    trust_proxy_headers: bool = Field(
        True,
        description="Honor X-Forwarded-For / X-Real-IP / X-Forwarded-Proto from the edge proxy",
    )
    bcrypt_rounds: int = Field(
        12,
        ge=4,
        le=31,
        description="bcrypt cost factor for admin password hashes",
    )
    max_failed_logins: int = Field(
        5,
        ge=1,
        description="Failed logins before an admin account is locked",
    )
    lockout_minutes: int = Field(
        15,
        ge=1,
        description="How long a locked admin account stays locked",
    )

    model_config = SettingsConfigDict(
        env_prefix="SECURITY_",
        case_sensitive=False,
    )

    @property
    def allowed_origin_list(self) -> list[str]:
        return parse_csv(self.allowed_origins)

    @property
    def token_ttl_seconds(self) -> int:
        return self.token_ttl_hours * 3600


class RateLimitSettings(BaseSettings):
    """Per-endpoint-class rate limit policies."""

    enabled: bool = Field(
        True,
        description="Enable rate limiting on all guarded routes",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    auth_window_seconds: int = Field(15 * 60, ge=1, description="Login attempt window")
    auth_max_requests: int = Field(5, ge=1, description="Login attempts allowed per window")

    lead_window_seconds: int = Field(60, ge=1, description="Lead submission window")
    lead_max_requests: int = Field(5, ge=1, description="Lead submissions allowed per window")

    admin_window_seconds: int = Field(60, ge=1, description="Admin API window")
    admin_max_requests: int = Field(60, ge=1, description="Admin API calls allowed per window")

    strict_window_seconds: int = Field(15 * 60, ge=1, description="General public endpoint window")
    strict_max_requests: int = Field(100, ge=1, description="General public calls allowed per window")

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class StorageSettings(BaseSettings):
    """Backend used by the admin and lead repositories."""

    backend: str = Field(
        "memory",
        description="Repository backend: 'memory' or 'supabase'",
    )
    supabase_url: str | None = Field(
        None,
        description="Supabase project URL (required for the supabase backend)",
    )
    supabase_service_key: str | None = Field(
        None,
        description="Supabase service role key (required for the supabase backend)",
    )
    timeout_seconds: float = Field(
        5.0,
        gt=0,
        description="Timeout applied to each Supabase request",
    )
    leads_table: str = Field("leads", description="Supabase table holding leads")
    admins_table: str = Field("admin_users", description="Supabase table holding admin accounts")
    bootstrap_admin_email: str | None = Field(
        None,
        description="Seed an admin account with this email into the memory backend",
    )
    bootstrap_admin_password: str | None = Field(
        None,
        description="Password for the seeded admin account",
    )
    bootstrap_admin_permissions: str = Field(
        "all",
        description="Comma-separated permissions granted to the seeded admin account",
    )

    model_config = SettingsConfigDict(
        env_prefix="STORAGE_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="'json' or 'plain'")
    output: str = Field("stdout", description="'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(10 * 1024 * 1024, description="Rotate log file after this size (0 disables)")
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to accept and propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_security_settings() -> "SecuritySettings":
    """Build security settings from environment.

    See _build_app_settings() for rationale about the type ignore.
    """

    return SecuritySettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()  # type: ignore[call-arg]


def _build_storage_settings() -> "StorageSettings":
    return StorageSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if required settings are missing
    (the token signing secret is the only mandatory value).

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    app: AppSettings = Field(default_factory=_build_app_settings)
    security: SecuritySettings = Field(default_factory=_build_security_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    storage: StorageSettings = Field(default_factory=_build_storage_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
