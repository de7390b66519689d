from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request

from app.api.body import json_body_openapi, parse_json_body
from app.api.dependencies import get_lead_service
from app.core.permissions import DELETE_LEADS, READ_LEADS, WRITE_LEADS, require_permission
from app.core.rate_limit import LEAD_SUBMISSION_POLICY, enforce_rate_limit, get_client_ip
from app.schemas.leads import LeadCreate, LeadFilters, LeadStatus, LeadUpdate
from app.services.lead_service import LeadService

router = APIRouter(prefix="/api/leads", tags=["Leads"])


@router.post(
    "",
    status_code=201,
    dependencies=[Depends(enforce_rate_limit(LEAD_SUBMISSION_POLICY))],
    openapi_extra=json_body_openapi(LeadCreate),
)
async def submit_lead(
    request: Request,
    service: LeadService = Depends(get_lead_service),
) -> dict:
    """Public application form submission.

    Rejects a second application for the same email with 409.
    """
    payload = await parse_json_body(request, LeadCreate)
    lead = await service.submit(payload, ip_address=get_client_ip(request))
    return {
        "success": True,
        "data": lead.model_dump(mode="json"),
        "message": "Application submitted successfully",
    }


@router.get("", dependencies=[Depends(require_permission(READ_LEADS))])
async def list_leads(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: LeadStatus | None = Query(None),
    state: str | None = Query(None, max_length=50),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
    service: LeadService = Depends(get_lead_service),
) -> dict:
    """Paginated lead listing, newest first."""
    filters = LeadFilters(status=status, state=state, start_date=start_date, end_date=end_date)
    leads, pagination = await service.list_leads(filters, page=page, limit=limit)
    return {
        "success": True,
        "data": [lead.model_dump(mode="json") for lead in leads],
        "pagination": pagination.model_dump(by_alias=True),
    }


@router.get("/stats", dependencies=[Depends(require_permission(READ_LEADS))])
async def lead_stats(service: LeadService = Depends(get_lead_service)) -> dict:
    """Dashboard aggregates."""
    stats = await service.stats()
    return {"success": True, "data": stats.model_dump(mode="json", by_alias=True)}


@router.get("/{lead_id}", dependencies=[Depends(require_permission(READ_LEADS))])
async def get_lead(lead_id: str, service: LeadService = Depends(get_lead_service)) -> dict:
    lead = await service.get(lead_id)
    return {"success": True, "data": lead.model_dump(mode="json")}


@router.patch(
    "/{lead_id}",
    dependencies=[Depends(require_permission(WRITE_LEADS))],
    openapi_extra=json_body_openapi(LeadUpdate),
)
async def update_lead(
    lead_id: str,
    request: Request,
    service: LeadService = Depends(get_lead_service),
) -> dict:
    changes = await parse_json_body(request, LeadUpdate)
    lead = await service.update(lead_id, changes)
    return {
        "success": True,
        "data": lead.model_dump(mode="json"),
        "message": "Lead updated successfully",
    }


@router.delete("/{lead_id}", dependencies=[Depends(require_permission(DELETE_LEADS))])
async def delete_lead(lead_id: str, service: LeadService = Depends(get_lead_service)) -> dict:
    await service.delete(lead_id)
    return {"success": True, "message": "Lead deleted successfully"}
