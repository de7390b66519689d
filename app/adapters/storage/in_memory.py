"""In-memory repositories.

Used for local development and tests. State lives in the process and is
lost on restart; an asyncio lock serializes writes so the duplicate-email
check and insert happen atomically within one event loop.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

from app.adapters.storage.base import AbstractAdminRepository, AbstractLeadRepository
from app.core.errors import ConflictAppError
from app.schemas.admin import AdminAccount
from app.schemas.leads import Lead, LeadFilters


class InMemoryAdminRepository(AbstractAdminRepository):
    def __init__(self, accounts: list[AdminAccount] | None = None) -> None:
        self._by_id: dict[str, AdminAccount] = {}
        for account in accounts or []:
            self._by_id[account.id] = account.model_copy(deep=True)

    async def get_by_email(self, email: str) -> AdminAccount | None:
        needle = email.strip().lower()
        for account in self._by_id.values():
            if account.email.lower() == needle:
                return account.model_copy(deep=True)
        return None

    async def get_by_id(self, admin_id: str) -> AdminAccount | None:
        account = self._by_id.get(admin_id)
        return account.model_copy(deep=True) if account else None

    async def save(self, account: AdminAccount) -> AdminAccount:
        self._by_id[account.id] = account.model_copy(deep=True)
        return account


def _aware(value: datetime) -> datetime:
    # Naive datetimes are treated as UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _matches(lead: Lead, filters: LeadFilters) -> bool:
    created_at = _aware(lead.created_at)
    if filters.status and lead.status != filters.status:
        return False
    if filters.state and lead.state.lower() != filters.state.strip().lower():
        return False
    if filters.start_date and created_at < _aware(filters.start_date):
        return False
    if filters.end_date and created_at > _aware(filters.end_date):
        return False
    return True


class InMemoryLeadRepository(AbstractLeadRepository):
    def __init__(self) -> None:
        self._leads: dict[str, Lead] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._leads)

    def _newest_first(self) -> list[Lead]:
        return sorted(self._leads.values(), key=lambda lead: _aware(lead.created_at), reverse=True)

    async def find_by_email(self, email: str) -> Lead | None:
        needle = email.strip().lower()
        for lead in self._leads.values():
            if lead.email == needle:
                return lead
        return None

    async def create(self, lead: Lead) -> Lead:
        async with self._lock:
            if await self.find_by_email(lead.email) is not None:
                raise ConflictAppError(
                    code="lead_duplicate_email",
                    message="An application with this email already exists",
                )
            self._leads[lead.id] = lead
        return lead

    async def get(self, lead_id: str) -> Lead | None:
        return self._leads.get(lead_id)

    async def list(
        self,
        filters: LeadFilters,
        *,
        offset: int,
        limit: int,
    ) -> tuple[list[Lead], int]:
        matching = [lead for lead in self._newest_first() if _matches(lead, filters)]
        return matching[offset : offset + limit], len(matching)

    async def update(self, lead_id: str, changes: dict[str, Any]) -> Lead | None:
        async with self._lock:
            lead = self._leads.get(lead_id)
            if lead is None:
                return None
            updated = lead.model_copy(update=changes)
            self._leads[lead_id] = updated
        return updated

    async def delete(self, lead_id: str) -> bool:
        async with self._lock:
            return self._leads.pop(lead_id, None) is not None

    async def list_since(self, since: datetime | None = None) -> list[Lead]:
        leads = self._newest_first()
        if since is None:
            return leads
        return [lead for lead in leads if _aware(lead.created_at) >= _aware(since)]
