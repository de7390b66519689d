"""Repository interfaces for admin accounts and leads.

Services depend on these abstractions so the in-memory backend used in
development and tests can be swapped for Supabase without touching routes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from app.schemas.admin import AdminAccount
from app.schemas.leads import Lead, LeadFilters


class AbstractAdminRepository(ABC):
    """Storage for admin accounts."""

    @abstractmethod
    async def get_by_email(self, email: str) -> AdminAccount | None:
        """Return the account with this (normalized) email, if any."""
        ...

    @abstractmethod
    async def get_by_id(self, admin_id: str) -> AdminAccount | None:
        ...

    @abstractmethod
    async def save(self, account: AdminAccount) -> AdminAccount:
        """Insert or replace an account and return the stored copy."""
        ...


class AbstractLeadRepository(ABC):
    """Storage for lead records."""

    @abstractmethod
    async def find_by_email(self, email: str) -> Lead | None:
        ...

    @abstractmethod
    async def create(self, lead: Lead) -> Lead:
        ...

    @abstractmethod
    async def get(self, lead_id: str) -> Lead | None:
        ...

    @abstractmethod
    async def list(
        self,
        filters: LeadFilters,
        *,
        offset: int,
        limit: int,
    ) -> tuple[list[Lead], int]:
        """List leads matching filters, newest first.

        Args:
            filters: Status/state/date filters.
            offset: Number of matching rows to skip.
            limit: Maximum rows to return.

        Returns:
            tuple[list[Lead], int]: The page of leads and the total match count.
        """
        ...

    @abstractmethod
    async def update(self, lead_id: str, changes: dict[str, Any]) -> Lead | None:
        """Apply changes to a lead; None if it does not exist."""
        ...

    @abstractmethod
    async def delete(self, lead_id: str) -> bool:
        """Delete a lead; False if it did not exist."""
        ...

    @abstractmethod
    async def list_since(self, since: datetime | None = None) -> list[Lead]:
        """All leads created at or after ``since`` (all leads when None), newest first."""
        ...
