"""Storage adapter layer - admin and lead repositories."""

from app.adapters.storage.base import AbstractAdminRepository, AbstractLeadRepository
from app.adapters.storage.factory import Repositories, create_repositories
from app.adapters.storage.in_memory import InMemoryAdminRepository, InMemoryLeadRepository
from app.adapters.storage.supabase_client import (
    SupabaseAdminRepository,
    SupabaseConnection,
    SupabaseLeadRepository,
)

__all__ = [
    "AbstractAdminRepository",
    "AbstractLeadRepository",
    "InMemoryAdminRepository",
    "InMemoryLeadRepository",
    "Repositories",
    "SupabaseAdminRepository",
    "SupabaseConnection",
    "SupabaseLeadRepository",
    "create_repositories",
]
