"""Lead intake and administration.

Public submissions are validated by the ``LeadCreate`` schema before they
reach this service; here we enforce email uniqueness, stamp server-side
metadata (id, status, caller IP, timestamps) and compute dashboard stats.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from app.adapters.storage.base import AbstractLeadRepository
from app.core.errors import ConflictAppError, NotFoundAppError
from app.core.logging import hash_for_log
from app.schemas.leads import (
    CountItem,
    DailyCount,
    Lead,
    LeadCreate,
    LeadFilters,
    LeadStats,
    LeadUpdate,
    Pagination,
    RecentActivity,
)

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "An application with this email already exists"
LEAD_NOT_FOUND = "Lead not found"

TOP_N = 5
RECENT_ACTIVITY_SIZE = 10
DAILY_STATS_DAYS = 7
CONVERTED_STATUSES = frozenset({"approved", "installed"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _top(counter: Counter) -> list[CountItem]:
    ranked = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    return [CountItem(key=key, count=count) for key, count in ranked[:TOP_N]]


def _as_utc_date(value: datetime) -> date:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).date()


class LeadService:
    def __init__(
        self,
        leads: AbstractLeadRepository,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._leads = leads
        self._clock = clock

    async def submit(self, payload: LeadCreate, *, ip_address: str | None = None) -> Lead:
        """Create a lead from a public application.

        Raises:
            ConflictAppError: If a lead with the same email already exists.
        """
        if await self._leads.find_by_email(payload.email) is not None:
            logger.info("lead.duplicate", extra={"email_hash": hash_for_log(payload.email)})
            raise ConflictAppError(code="lead_duplicate_email", message=DUPLICATE_EMAIL)

        now = self._clock()
        lead = Lead(
            id=str(uuid.uuid4()),
            status="new",
            ip_address=ip_address,
            created_at=now,
            **payload.model_dump(exclude={"submission_time"}),
            submission_time=payload.submission_time or now,
        )
        created = await self._leads.create(lead)
        logger.info(
            "lead.created",
            extra={
                "lead_id": created.id,
                "state": created.state,
                "has_referral": bool(created.referral_code),
            },
        )
        return created

    async def list_leads(
        self,
        filters: LeadFilters,
        *,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Lead], Pagination]:
        offset = (page - 1) * limit
        leads, total = await self._leads.list(filters, offset=offset, limit=limit)
        pagination = Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit) if total else 0,
        )
        return leads, pagination

    async def get(self, lead_id: str) -> Lead:
        lead = await self._leads.get(lead_id)
        if lead is None:
            raise NotFoundAppError(code="lead_not_found", message=LEAD_NOT_FOUND)
        return lead

    async def update(self, lead_id: str, changes: LeadUpdate) -> Lead:
        values = changes.changes()
        if not values:
            return await self.get(lead_id)

        lead = await self._leads.update(lead_id, values)
        if lead is None:
            raise NotFoundAppError(code="lead_not_found", message=LEAD_NOT_FOUND)
        logger.info("lead.updated", extra={"lead_id": lead_id, "fields": sorted(values)})
        return lead

    async def delete(self, lead_id: str) -> None:
        if not await self._leads.delete(lead_id):
            raise NotFoundAppError(code="lead_not_found", message=LEAD_NOT_FOUND)
        logger.info("lead.deleted", extra={"lead_id": lead_id})

    async def stats(self) -> LeadStats:
        """Aggregate dashboard statistics over all leads."""
        leads = await self._leads.list_since(None)
        total = len(leads)
        statuses = Counter(lead.status for lead in leads)

        converted = sum(statuses[status] for status in CONVERTED_STATUSES)
        conversion_rate = round(converted / total * 100, 2) if total else 0.0

        durations = [lead.time_to_complete for lead in leads if lead.time_to_complete is not None]
        average_time = round(sum(durations) / len(durations), 2) if durations else 0.0

        today = _as_utc_date(self._clock())
        days = [today - timedelta(days=offset) for offset in range(DAILY_STATS_DAYS - 1, -1, -1)]
        per_day = Counter(_as_utc_date(lead.created_at) for lead in leads)

        return LeadStats(
            total_leads=total,
            new_leads=statuses["new"],
            qualified_leads=statuses["qualified"],
            approved_leads=statuses["approved"],
            conversion_rate=conversion_rate,
            average_time_to_complete=average_time,
            top_states=_top(Counter(lead.state for lead in leads)),
            top_referral_sources=_top(
                Counter(lead.referral_source for lead in leads if lead.referral_source)
            ),
            daily_stats=[DailyCount(date=day.isoformat(), count=per_day[day]) for day in days],
            recent_activity=[
                RecentActivity(
                    description=f"{lead.full_name} from {lead.state} submitted an application",
                    timestamp=lead.created_at,
                    status=lead.status,
                )
                for lead in leads[:RECENT_ACTIVITY_SIZE]
            ],
        )
