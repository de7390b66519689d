"""Factory for repository backends."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from app.adapters.storage.base import AbstractAdminRepository, AbstractLeadRepository
from app.adapters.storage.in_memory import InMemoryAdminRepository, InMemoryLeadRepository
from app.adapters.storage.supabase_client import (
    SupabaseAdminRepository,
    SupabaseConnection,
    SupabaseLeadRepository,
)
from app.core.config import StorageSettings, parse_csv, settings
from app.core.errors import ValidationAppError
from app.core.passwords import hash_password
from app.schemas.admin import AdminAccount, normalize_email

logger = logging.getLogger(__name__)


@dataclass
class Repositories:
    admins: AbstractAdminRepository
    leads: AbstractLeadRepository


def _bootstrap_accounts(cfg: StorageSettings) -> list[AdminAccount]:
    if not cfg.bootstrap_admin_email or not cfg.bootstrap_admin_password:
        return []
    account = AdminAccount(
        id=str(uuid.uuid4()),
        email=normalize_email(cfg.bootstrap_admin_email),
        name="Administrator",
        role="super_admin",
        permissions=parse_csv(cfg.bootstrap_admin_permissions),
        password_hash=hash_password(cfg.bootstrap_admin_password),
    )
    logger.info("storage.bootstrap_admin_seeded", extra={"permissions": account.permissions})
    return [account]


def create_repositories(storage_settings: StorageSettings | None = None) -> Repositories:
    """Instantiate repositories for the configured backend.

    Returns:
        Repositories: Admin and lead repositories sharing one backend.

    Raises:
        ValidationAppError: If the backend is unknown or misconfigured.
    """
    cfg = storage_settings or settings.storage
    backend = cfg.backend.lower()

    if backend == "memory":
        return Repositories(
            admins=InMemoryAdminRepository(_bootstrap_accounts(cfg)),
            leads=InMemoryLeadRepository(),
        )

    if backend == "supabase":
        if not cfg.supabase_url or not cfg.supabase_service_key:
            raise ValidationAppError(
                code="storage_missing_supabase_config",
                message="Supabase backend requires STORAGE_SUPABASE_URL and STORAGE_SUPABASE_SERVICE_KEY",
            )
        connection = SupabaseConnection(
            cfg.supabase_url,
            cfg.supabase_service_key,
            timeout_seconds=cfg.timeout_seconds,
        )
        return Repositories(
            admins=SupabaseAdminRepository(connection, cfg.admins_table),
            leads=SupabaseLeadRepository(connection, cfg.leads_table),
        )

    raise ValidationAppError(
        code="storage_unknown_backend",
        message=f"Unknown storage backend: '{backend}'. Supported backends: memory, supabase",
    )
