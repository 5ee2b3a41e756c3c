"""
Leads API Endpoints.

Operator queue: browse NEW leads, open one, update status, notes or assignee.
All endpoints require the `X-Operator-Key` header.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_queue_service, require_operator
from api.models import LeadDetailResponse, LeadQueueResponse, LeadSummaryResponse, LeadUpdateRequest
from services.lead_queue_service import LeadNotFoundError, LeadQueueService, LeadUpdate

router = APIRouter()


@router.get(
    "/leads/queue",
    response_model=LeadQueueResponse,
    summary="Active Lead Queue",
    description="NEW leads ordered by priority (highest first), oldest first on ties."
)
def get_lead_queue(
    limit: int = Query(100, ge=1, le=500, description="Maximum number of leads to return"),
    service: LeadQueueService = Depends(get_queue_service),
    operator_id: Optional[str] = Depends(require_operator),
):
    items = [LeadSummaryResponse.from_lead(lead) for lead in service.active_queue(limit=limit)]
    return LeadQueueResponse(items=items, total_count=len(items))


@router.get(
    "/leads/{lead_id}",
    response_model=LeadDetailResponse,
    summary="Lead Detail",
    description="Lead with its attachments (fresh signed URLs) and event history."
)
def get_lead_detail(
    lead_id: UUID,
    service: LeadQueueService = Depends(get_queue_service),
    operator_id: Optional[str] = Depends(require_operator),
):
    try:
        detail = service.lead_detail(lead_id)
    except LeadNotFoundError:
        raise HTTPException(status_code=404, detail="Lead not found")
    return LeadDetailResponse.from_detail(detail)


@router.patch(
    "/leads/{lead_id}",
    response_model=LeadSummaryResponse,
    summary="Update Lead",
    description="Change status, operator notes or assignee. Priority and SLA are never recomputed."
)
def update_lead(
    lead_id: UUID,
    request: LeadUpdateRequest,
    service: LeadQueueService = Depends(get_queue_service),
    operator_id: Optional[str] = Depends(require_operator),
):
    """
    Apply operator changes to a lead.

    Each changed field appends an event (`status_changed`, `notes_updated`,
    `lead_assigned`) with the `X-Operator-Id` header as actor.
    """
    update = LeadUpdate(
        status=request.status,
        operator_notes=request.operator_notes,
        assigned_to=request.assigned_to,
    )
    try:
        lead = service.update_lead(lead_id, update, actor=operator_id)
    except LeadNotFoundError:
        raise HTTPException(status_code=404, detail="Lead not found")
    return LeadSummaryResponse.from_lead(lead)
