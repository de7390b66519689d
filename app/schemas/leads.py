"""Pydantic schemas for lead submission and lead administration."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.admin import normalize_email

LeadStatus = Literal["new", "contacted", "qualified", "approved", "rejected", "installed"]

PHONE_PATTERN = r"^[\d\s\-\(\)\+]+$"


class LeadCreate(BaseModel):
    """Public application form payload (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., alias="fullName", min_length=2, max_length=255)
    email: str
    phone: str = Field(..., pattern=PHONE_PATTERN, max_length=32)
    city: str = Field(..., min_length=2, max_length=100)
    state: str = Field(..., min_length=2, max_length=50)
    has_residence: bool = Field(..., alias="hasResidence")
    has_internet: bool = Field(..., alias="hasInternet")
    has_space: bool = Field(..., alias="hasSpace")

    referral_code: str | None = Field(None, alias="referralCode", max_length=64)
    referral_source: str | None = Field(None, alias="referralSource", max_length=255)
    session_id: str | None = Field(None, alias="sessionId", max_length=128)
    submission_time: datetime | None = Field(None, alias="submissionTime")
    time_to_complete: float | None = Field(None, alias="timeToComplete", ge=0)
    utm_source: str | None = Field(None, alias="utmSource", max_length=255)
    utm_medium: str | None = Field(None, alias="utmMedium", max_length=255)
    utm_campaign: str | None = Field(None, alias="utmCampaign", max_length=255)
    user_agent: str | None = Field(None, alias="userAgent", max_length=512)
    screen_resolution: str | None = Field(None, alias="screenResolution", max_length=32)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator("full_name", "city", "state")
    @classmethod
    def _strip(cls, value: str) -> str:
        return value.strip()


class Lead(BaseModel):
    """Stored lead record (snake_case, as persisted)."""

    id: str
    full_name: str
    email: str
    phone: str
    city: str
    state: str
    has_residence: bool
    has_internet: bool
    has_space: bool
    status: LeadStatus = "new"
    referral_code: str | None = None
    referral_source: str | None = None
    session_id: str | None = None
    ip_address: str | None = None
    utm_source: str | None = None
    utm_medium: str | None = None
    utm_campaign: str | None = None
    user_agent: str | None = None
    screen_resolution: str | None = None
    submission_time: datetime | None = None
    time_to_complete: float | None = None
    monthly_earnings: float | None = None
    equipment_type: str | None = None
    installation_date: str | None = None
    notes: str | None = None
    created_at: datetime


class LeadUpdate(BaseModel):
    """Fields an admin may change on a lead."""

    model_config = ConfigDict(extra="forbid")

    status: LeadStatus | None = None
    monthly_earnings: float | None = Field(None, ge=0)
    equipment_type: str | None = Field(None, max_length=255)
    installation_date: str | None = Field(None, max_length=32)
    notes: str | None = Field(None, max_length=5000)

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class LeadFilters(BaseModel):
    """Filters for the admin lead listing."""

    status: LeadStatus | None = None
    state: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int = Field(..., serialization_alias="totalPages")


class CountItem(BaseModel):
    key: str
    count: int


class DailyCount(BaseModel):
    date: str
    count: int


class RecentActivity(BaseModel):
    type: str = "new_lead"
    description: str
    timestamp: datetime
    status: LeadStatus


class LeadStats(BaseModel):
    """Dashboard aggregates over all leads."""

    total_leads: int = Field(..., serialization_alias="totalLeads")
    new_leads: int = Field(..., serialization_alias="newLeads")
    qualified_leads: int = Field(..., serialization_alias="qualifiedLeads")
    approved_leads: int = Field(..., serialization_alias="approvedLeads")
    conversion_rate: float = Field(..., serialization_alias="conversionRate")
    average_time_to_complete: float = Field(..., serialization_alias="averageTimeToComplete")
    top_states: list[CountItem] = Field(default_factory=list, serialization_alias="topStates")
    top_referral_sources: list[CountItem] = Field(
        default_factory=list, serialization_alias="topReferralSources"
    )
    daily_stats: list[DailyCount] = Field(default_factory=list, serialization_alias="dailyStats")
    recent_activity: list[RecentActivity] = Field(
        default_factory=list, serialization_alias="recentActivity"
    )
