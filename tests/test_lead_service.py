"""Unit tests for LeadService against the in-memory repository."""

from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from app.adapters.storage.in_memory import InMemoryLeadRepository
from app.core.errors import ConflictAppError, NotFoundAppError
from app.schemas.leads import LeadCreate, LeadFilters, LeadUpdate
from app.services.lead_service import LeadService

NOW = datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)


def _create(lead_payload, **overrides) -> LeadCreate:
    return LeadCreate.model_validate(lead_payload(**overrides))


@pytest.fixture
def clock() -> Mock:
    return Mock(return_value=NOW)


@pytest.fixture
def repo() -> InMemoryLeadRepository:
    return InMemoryLeadRepository()


@pytest.fixture
def service(repo, clock) -> LeadService:
    return LeadService(repo, clock=clock)


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_stamps_server_fields(self, service, lead_payload) -> None:
        lead = await service.submit(_create(lead_payload), ip_address="203.0.113.9")

        assert lead.status == "new"
        assert lead.ip_address == "203.0.113.9"
        assert lead.created_at == NOW
        assert lead.submission_time == NOW
        assert lead.email == "jordan.rivera@example.com"

    @pytest.mark.asyncio
    async def test_submit_keeps_client_submission_time(self, service, lead_payload) -> None:
        lead = await service.submit(_create(lead_payload, submissionTime="2025-03-10T14:58:00Z"))

        assert lead.submission_time == datetime(2025, 3, 10, 14, 58, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_duplicate_email_raises_conflict(self, service, lead_payload) -> None:
        await service.submit(_create(lead_payload))

        with pytest.raises(ConflictAppError):
            await service.submit(_create(lead_payload, email=" Jordan.Rivera@Example.com "))


class TestAdministration:
    @pytest.mark.asyncio
    async def test_list_filters_by_date_range(self, service, clock, lead_payload) -> None:
        for days_ago in (10, 5, 1):
            clock.return_value = NOW - timedelta(days=days_ago)
            await service.submit(_create(lead_payload, email=f"d{days_ago}@example.com"))

        filters = LeadFilters(start_date=NOW - timedelta(days=6), end_date=NOW)
        leads, pagination = await service.list_leads(filters, page=1, limit=10)

        assert [lead.email for lead in leads] == ["d1@example.com", "d5@example.com"]
        assert pagination.total == 2
        assert pagination.total_pages == 1

    @pytest.mark.asyncio
    async def test_list_second_page(self, service, clock, lead_payload) -> None:
        for i in range(5):
            clock.return_value = NOW + timedelta(minutes=i)
            await service.submit(_create(lead_payload, email=f"p{i}@example.com"))

        leads, pagination = await service.list_leads(LeadFilters(), page=2, limit=2)

        assert [lead.email for lead in leads] == ["p2@example.com", "p1@example.com"]
        assert pagination.total_pages == 3

    @pytest.mark.asyncio
    async def test_update_only_changes_given_fields(self, service, lead_payload) -> None:
        lead = await service.submit(_create(lead_payload))

        updated = await service.update(lead.id, LeadUpdate(status="approved", monthly_earnings=120.0))

        assert updated.status == "approved"
        assert updated.monthly_earnings == 120.0
        assert updated.full_name == lead.full_name

    @pytest.mark.asyncio
    async def test_empty_update_returns_lead(self, service, lead_payload) -> None:
        lead = await service.submit(_create(lead_payload))

        assert (await service.update(lead.id, LeadUpdate())).id == lead.id

    @pytest.mark.asyncio
    async def test_missing_lead_raises_not_found(self, service) -> None:
        with pytest.raises(NotFoundAppError):
            await service.get("missing")
        with pytest.raises(NotFoundAppError):
            await service.update("missing", LeadUpdate(status="contacted"))
        with pytest.raises(NotFoundAppError):
            await service.delete("missing")


class TestStats:
    @pytest.mark.asyncio
    async def test_empty_stats(self, service) -> None:
        stats = await service.stats()

        assert stats.total_leads == 0
        assert stats.conversion_rate == 0.0
        assert [d.count for d in stats.daily_stats] == [0] * 7
        assert stats.daily_stats[-1].date == "2025-03-10"
        assert stats.recent_activity == []

    @pytest.mark.asyncio
    async def test_stats_aggregates(self, service, clock, lead_payload) -> None:
        states = ["TX", "TX", "CA", "FL"]
        for i, state in enumerate(states):
            clock.return_value = NOW - timedelta(days=i)
            await service.submit(
                _create(
                    lead_payload,
                    email=f"s{i}@example.com",
                    state=state,
                    referralSource="google" if i else "facebook",
                    timeToComplete=60.0 + i * 10,
                )
            )
        leads, _ = await service.list_leads(LeadFilters(), page=1, limit=10)
        await service.update(leads[0].id, LeadUpdate(status="approved"))
        await service.update(leads[1].id, LeadUpdate(status="installed"))
        await service.update(leads[2].id, LeadUpdate(status="qualified"))
        clock.return_value = NOW

        stats = await service.stats()

        assert stats.total_leads == 4
        assert stats.new_leads == 1
        assert stats.qualified_leads == 1
        assert stats.approved_leads == 1
        assert stats.conversion_rate == 50.0
        assert stats.average_time_to_complete == 75.0
        assert stats.top_states[0].key == "TX"
        assert stats.top_states[0].count == 2
        assert stats.top_referral_sources[0].key == "google"
        assert [d.count for d in stats.daily_stats] == [0, 0, 0, 1, 1, 1, 1]
        assert stats.recent_activity[0].description == "Jordan Rivera from TX submitted an application"
