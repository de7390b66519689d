"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It sets the environment before any settings are imported and resets the
process-wide rate limit counters and repositories between tests.
"""

import os

# CRITICAL: Set this before any imports that might load settings
# This prevents Pydantic from loading the .env file in tests
os.environ["TESTING"] = "true"

# Set default env vars that all tests might need
os.environ.setdefault("SECURITY_JWT_SECRET", "test-secret-key-for-admin-tokens")
os.environ.setdefault("SECURITY_BCRYPT_ROUNDS", "4")
os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("STORAGE_BOOTSTRAP_ADMIN_EMAIL", "admin@edgevantagepro.com")
os.environ.setdefault("STORAGE_BOOTSTRAP_ADMIN_PASSWORD", "correct-horse-battery")
os.environ.setdefault("STORAGE_BOOTSTRAP_ADMIN_PERMISSIONS", "all")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import reset_services
from app.core.app_factory import create_app
from app.core.auth import issue_token
from app.core.rate_limit import reset_rate_limits

ADMIN_EMAIL = os.environ["STORAGE_BOOTSTRAP_ADMIN_EMAIL"]
ADMIN_PASSWORD = os.environ["STORAGE_BOOTSTRAP_ADMIN_PASSWORD"]
ALLOWED_ORIGIN = "https://edgevantagepro.com"


@pytest.fixture(autouse=True)
def _fresh_state():
    """Start every test with empty rate limit counters and storage."""
    reset_rate_limits()
    reset_services()
    yield
    reset_rate_limits()
    reset_services()


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


def make_token(*permissions: str, subject_id: str = "admin-1", email: str = "ops@edgevantagepro.com", now=None) -> str:
    """Sign a session token carrying the given permissions."""
    return issue_token(subject_id, email, "admin", permissions, now=now)


@pytest.fixture
def token_factory():
    return make_token


@pytest.fixture
def admin_client(client: TestClient) -> TestClient:
    """Client carrying a wildcard admin session cookie."""
    client.cookies.set("admin-token", make_token("all"))
    return client


def valid_lead_payload(**overrides) -> dict:
    payload = {
        "fullName": "Jordan Rivera",
        "email": "jordan.rivera@example.com",
        "phone": "(555) 123-4567",
        "city": "Austin",
        "state": "TX",
        "hasResidence": True,
        "hasInternet": True,
        "hasSpace": True,
        "referralSource": "facebook",
        "timeToComplete": 95.5,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def lead_payload():
    return valid_lead_payload


@pytest.fixture
def admin_credentials() -> dict:
    return {"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
