"""Supabase-backed repositories.

Every query runs through ``SupabaseConnection.execute`` which applies the
configured timeout and converts PostgREST, transport and timeout failures into
``StorageAppError`` so routes answer 500 with the uniform error envelope.
A unique violation becomes a conflict only where the caller names one.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable

import httpx
from supabase import AsyncClient, PostgrestAPIError, create_async_client

from app.adapters.storage.base import AbstractAdminRepository, AbstractLeadRepository
from app.core.errors import ConflictAppError, StorageAppError
from app.schemas.admin import AdminAccount
from app.schemas.leads import Lead, LeadFilters

logger = logging.getLogger(__name__)

# Postgres unique_violation
UNIQUE_VIOLATION = "23505"


class SupabaseConnection:
    """Lazily created async Supabase client shared by both repositories."""

    def __init__(self, url: str, service_key: str, *, timeout_seconds: float = 5.0) -> None:
        self._url = url
        self._service_key = service_key
        self.timeout_seconds = timeout_seconds
        self._client: AsyncClient | None = None
        self._init_lock = asyncio.Lock()

    async def client(self) -> AsyncClient:
        if self._client is None:
            async with self._init_lock:
                if self._client is None:
                    self._client = await self.execute(
                        create_async_client(self._url, self._service_key),
                        operation="connect",
                    )
                    logger.info("supabase.connected", extra={"timeout_s": self.timeout_seconds})
        return self._client

    async def execute(
        self,
        awaitable: Awaitable[Any],
        *,
        operation: str,
        on_conflict: ConflictAppError | None = None,
    ) -> Any:
        """Await a Supabase call with timeout and error mapping.

        Args:
            on_conflict: Raised for a unique constraint violation. Without it a
                violation is reported like any other API error.

        Raises:
            ConflictAppError: The caller supplied error, on a unique violation.
            StorageAppError: On any other storage failure.
        """
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            logger.error("supabase.timeout", extra={"operation": operation})
            raise StorageAppError(
                code="storage_timeout",
                message="Internal server error",
            ) from exc
        except PostgrestAPIError as exc:
            if on_conflict is not None and getattr(exc, "code", None) == UNIQUE_VIOLATION:
                raise on_conflict from exc
            logger.error(
                "supabase.api_error",
                extra={"operation": operation, "pg_code": getattr(exc, "code", None)},
            )
            raise StorageAppError(
                code="storage_api_error",
                message="Internal server error",
            ) from exc
        except httpx.HTTPError as exc:
            logger.error(
                "supabase.transport_error",
                extra={"operation": operation, "error_type": type(exc).__name__},
            )
            raise StorageAppError(
                code="storage_unavailable",
                message="Internal server error",
            ) from exc


def _rows(response: Any) -> list[dict[str, Any]]:
    return list(getattr(response, "data", None) or [])


class SupabaseAdminRepository(AbstractAdminRepository):
    def __init__(self, connection: SupabaseConnection, table: str = "admin_users") -> None:
        self._conn = connection
        self._table = table

    async def _first(self, column: str, value: str) -> AdminAccount | None:
        client = await self._conn.client()
        query = client.table(self._table).select("*").eq(column, value).limit(1)
        rows = _rows(await self._conn.execute(query.execute(), operation=f"admin.get_by_{column}"))
        return AdminAccount.model_validate(rows[0]) if rows else None

    async def get_by_email(self, email: str) -> AdminAccount | None:
        return await self._first("email", email.strip().lower())

    async def get_by_id(self, admin_id: str) -> AdminAccount | None:
        return await self._first("id", admin_id)

    async def save(self, account: AdminAccount) -> AdminAccount:
        client = await self._conn.client()
        payload = account.model_dump(mode="json")
        query = client.table(self._table).upsert(payload)
        await self._conn.execute(query.execute(), operation="admin.save")
        return account


class SupabaseLeadRepository(AbstractLeadRepository):
    def __init__(self, connection: SupabaseConnection, table: str = "leads") -> None:
        self._conn = connection
        self._table = table

    async def find_by_email(self, email: str) -> Lead | None:
        client = await self._conn.client()
        query = client.table(self._table).select("*").eq("email", email.strip().lower()).limit(1)
        rows = _rows(await self._conn.execute(query.execute(), operation="lead.find_by_email"))
        return Lead.model_validate(rows[0]) if rows else None

    async def create(self, lead: Lead) -> Lead:
        client = await self._conn.client()
        query = client.table(self._table).insert(lead.model_dump(mode="json"))
        rows = _rows(
            await self._conn.execute(
                query.execute(),
                operation="lead.create",
                on_conflict=ConflictAppError(
                    code="lead_duplicate_email",
                    message="An application with this email already exists",
                ),
            )
        )
        return Lead.model_validate(rows[0]) if rows else lead

    async def get(self, lead_id: str) -> Lead | None:
        client = await self._conn.client()
        query = client.table(self._table).select("*").eq("id", lead_id).limit(1)
        rows = _rows(await self._conn.execute(query.execute(), operation="lead.get"))
        return Lead.model_validate(rows[0]) if rows else None

    async def list(
        self,
        filters: LeadFilters,
        *,
        offset: int,
        limit: int,
    ) -> tuple[list[Lead], int]:
        client = await self._conn.client()
        query = client.table(self._table).select("*", count="exact")
        if filters.status:
            query = query.eq("status", filters.status)
        if filters.state:
            query = query.ilike("state", filters.state.strip())
        if filters.start_date:
            query = query.gte("created_at", filters.start_date.isoformat())
        if filters.end_date:
            query = query.lte("created_at", filters.end_date.isoformat())
        query = query.order("created_at", desc=True).range(offset, offset + limit - 1)

        response = await self._conn.execute(query.execute(), operation="lead.list")
        leads = [Lead.model_validate(row) for row in _rows(response)]
        total = getattr(response, "count", None)
        return leads, total if total is not None else len(leads)

    async def update(self, lead_id: str, changes: dict[str, Any]) -> Lead | None:
        client = await self._conn.client()
        payload = {
            key: value.isoformat() if isinstance(value, datetime) else value
            for key, value in changes.items()
        }
        query = client.table(self._table).update(payload).eq("id", lead_id)
        rows = _rows(await self._conn.execute(query.execute(), operation="lead.update"))
        return Lead.model_validate(rows[0]) if rows else None

    async def delete(self, lead_id: str) -> bool:
        client = await self._conn.client()
        query = client.table(self._table).delete().eq("id", lead_id)
        rows = _rows(await self._conn.execute(query.execute(), operation="lead.delete"))
        return bool(rows)

    async def list_since(self, since: datetime | None = None) -> list[Lead]:
        client = await self._conn.client()
        query = client.table(self._table).select("*")
        if since is not None:
            query = query.gte("created_at", since.isoformat())
        query = query.order("created_at", desc=True)
        response = await self._conn.execute(query.execute(), operation="lead.list_since")
        return [Lead.model_validate(row) for row in _rows(response)]
