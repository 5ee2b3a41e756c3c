"""
API Request and Response Models.

Pydantic models for documenting and serializing API payloads. The public intake
and upload endpoints read raw JSON (presence checks and error wording are part of
their contract); these models describe their responses.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from domain.lead import Lead, LeadEvent, LeadStatus
from services.lead_queue_service import AttachmentView, LeadDetail


# ============================================================================
# Public Intake Models
# ============================================================================

class IntakeResponse(BaseModel):
    """Successful lead submission."""
    ok: bool = True
    lead_id: UUID
    priority_score: int

    class Config:
        json_schema_extra = {
            "example": {
                "ok": True,
                "lead_id": "123e4567-e89b-12d3-a456-426614174000",
                "priority_score": 104
            }
        }


class UploadResponse(BaseModel):
    """Successful attachment upload."""
    ok: bool = True
    file_id: Optional[UUID] = None  # None when the lead_files row could not be written
    storage_path: str
    signed_url: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "ok": True,
                "file_id": "123e4567-e89b-12d3-a456-426614174001",
                "storage_path": "leads/123e4567-e89b-12d3-a456-426614174000/1735732800000-a1b2c3d4_kitchen.jpg",
                "signed_url": "https://example.supabase.co/storage/v1/object/sign/interventia-intake/leads/..."
            }
        }


class ErrorResponse(BaseModel):
    """Error body shared by every endpoint."""
    ok: bool = False
    error: str

    class Config:
        json_schema_extra = {
            "example": {
                "ok": False,
                "error": "Missing required field: phone"
            }
        }


# ============================================================================
# Operator Queue Models
# ============================================================================

class LeadSummaryResponse(BaseModel):
    """Single lead as shown in the operator queue."""
    lead_id: UUID
    created_at: datetime
    lang: str
    pest_category: str
    pest_detail: str
    urgency: str
    postal_code: str
    city: str
    contact_method: str
    phone: str
    status: str
    priority_score: int
    sla_due_at: datetime
    assigned_to: Optional[str] = None

    @classmethod
    def from_lead(cls, lead: Lead) -> "LeadSummaryResponse":
        return cls(
            lead_id=lead.lead_id,
            created_at=lead.created_at,
            lang=lead.lang.value,
            pest_category=lead.pest_category,
            pest_detail=lead.pest_detail,
            urgency=lead.urgency.value,
            postal_code=lead.postal_code,
            city=lead.city,
            contact_method=lead.contact_method.value,
            phone=lead.phone,
            status=lead.status.value,
            priority_score=lead.priority_score,
            sla_due_at=lead.sla_due_at,
            assigned_to=lead.assigned_to,
        )

    class Config:
        json_schema_extra = {
            "example": {
                "lead_id": "123e4567-e89b-12d3-a456-426614174000",
                "created_at": "2025-01-01T12:00:00Z",
                "lang": "FR",
                "pest_category": "insects",
                "pest_detail": "punaises de lit",
                "urgency": "IMMEDIATE",
                "postal_code": "1000",
                "city": "Bruxelles",
                "contact_method": "WHATSAPP",
                "phone": "+32470123456",
                "status": "NEW",
                "priority_score": 117,
                "sla_due_at": "2025-01-01T14:00:00Z",
                "assigned_to": None
            }
        }


class LeadQueueResponse(BaseModel):
    """Active queue: NEW leads, highest priority first."""
    items: List[LeadSummaryResponse]
    total_count: int


class LeadFileResponse(BaseModel):
    file_id: UUID
    storage_path: str
    mime_type: str
    size_bytes: int
    created_at: datetime
    signed_url: Optional[str] = None

    @classmethod
    def from_attachment(cls, attachment: AttachmentView) -> "LeadFileResponse":
        f = attachment.lead_file
        return cls(
            file_id=f.file_id,
            storage_path=f.storage_path,
            mime_type=f.mime_type,
            size_bytes=f.size_bytes,
            created_at=f.created_at,
            signed_url=attachment.signed_url,
        )


class LeadEventResponse(BaseModel):
    event_id: UUID
    event_type: str
    actor: Optional[str] = None
    payload: dict
    created_at: datetime

    @classmethod
    def from_event(cls, event: LeadEvent) -> "LeadEventResponse":
        return cls(
            event_id=event.event_id,
            event_type=event.event_type,
            actor=event.actor,
            payload=dict(event.payload),
            created_at=event.created_at,
        )


class LeadDetailResponse(LeadSummaryResponse):
    """Full lead with attachments and event trail (newest first)."""
    source: str
    utm_source: Optional[str] = None
    utm_campaign: Optional[str] = None
    description: str
    operator_notes: Optional[str] = None
    updated_at: Optional[datetime] = None
    files: List[LeadFileResponse] = Field(default_factory=list)
    events: List[LeadEventResponse] = Field(default_factory=list)

    @classmethod
    def from_detail(cls, detail: LeadDetail) -> "LeadDetailResponse":
        lead = detail.lead
        summary = LeadSummaryResponse.from_lead(lead)
        return cls(
            **summary.model_dump(),
            source=lead.source,
            utm_source=lead.utm_source,
            utm_campaign=lead.utm_campaign,
            description=lead.description,
            operator_notes=lead.operator_notes,
            updated_at=lead.updated_at,
            files=[LeadFileResponse.from_attachment(a) for a in detail.files],
            events=[LeadEventResponse.from_event(e) for e in detail.events],
        )


class LeadUpdateRequest(BaseModel):
    """Operator changes. Omitted fields are left unchanged."""
    status: Optional[LeadStatus] = Field(None, description="New status (NEW, CONTACTED, SCHEDULED, DONE, LOST, SPAM)")
    operator_notes: Optional[str] = Field(None, max_length=5000)
    assigned_to: Optional[str] = Field(None, max_length=200)

    class Config:
        json_schema_extra = {
            "example": {
                "status": "CONTACTED",
                "operator_notes": "Rappeler demain matin",
                "assigned_to": "tech-liege-01"
            }
        }
