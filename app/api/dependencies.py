"""Service providers for route handlers.

Repositories are created once per process from settings. Tests call
``reset_services`` to start from empty storage.
"""

from __future__ import annotations

from functools import lru_cache

from app.adapters.storage.factory import Repositories, create_repositories
from app.services.auth_service import AuthService
from app.services.lead_service import LeadService


@lru_cache(maxsize=1)
def get_repositories() -> Repositories:
    return create_repositories()


def get_auth_service() -> AuthService:
    return AuthService(get_repositories().admins)


def get_lead_service() -> LeadService:
    return LeadService(get_repositories().leads)


def reset_services() -> None:
    """Drop cached repositories so the next request rebuilds them."""
    get_repositories.cache_clear()
