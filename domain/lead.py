"""
Domain: Lead, LeadFile and LeadEvent entities.

Contract excerpts implemented here:
- A Lead represents a single pest-control service request and is uniquely
  identified by lead_id (UUID), generated at creation and immutable.
- priority_score and sla_due_at are set once at intake and never recomputed.
- urgency is always one of IMMEDIATE, H48, INSPECTION. The client-observable
  synonym 48H (and the onboarding form values) are canonicalized at the boundary.
- Status transitions are operator-driven except for the initial NEW/SPAM
  assignment made at intake. Leads are never deleted.
- LeadFile and LeadEvent rows are never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID

from .time import require_utc_timestamp


class Lang(str, Enum):
    FR = "FR"
    NL = "NL"

    @staticmethod
    def parse(value: str) -> "Lang":
        """Accepts FR/NL in any case (the onboarding form sends lowercase)."""

        return Lang(value.strip().upper())


class Urgency(str, Enum):
    IMMEDIATE = "IMMEDIATE"
    H48 = "H48"
    INSPECTION = "INSPECTION"

    @staticmethod
    def parse(value: str) -> "Urgency":
        """
        Resolve any accepted spelling to the canonical Urgency.

        Raises ValueError for values outside the mapping table.
        """

        try:
            return _URGENCY_SYNONYMS[value.strip()]
        except KeyError:
            raise ValueError(f"Unknown urgency: {value!r}") from None


# Single mapping table shared by the intake endpoint and the client flow.
_URGENCY_SYNONYMS: dict[str, Urgency] = {
    "IMMEDIATE": Urgency.IMMEDIATE,
    "H48": Urgency.H48,
    "48H": Urgency.H48,
    "INSPECTION": Urgency.INSPECTION,
    # Onboarding form values
    "immediate": Urgency.IMMEDIATE,
    "today": Urgency.IMMEDIATE,
    "48h": Urgency.H48,
    "week": Urgency.INSPECTION,
}


class ContactMethod(str, Enum):
    WHATSAPP = "WHATSAPP"
    CALL = "CALL"
    ONLINE = "ONLINE"

    @staticmethod
    def parse(value: str) -> "ContactMethod":
        try:
            return _CONTACT_SYNONYMS[value.strip()]
        except KeyError:
            raise ValueError(f"Unknown contact method: {value!r}") from None


_CONTACT_SYNONYMS: dict[str, ContactMethod] = {
    "WHATSAPP": ContactMethod.WHATSAPP,
    "CALL": ContactMethod.CALL,
    "ONLINE": ContactMethod.ONLINE,
    "whatsapp": ContactMethod.WHATSAPP,
    "phone": ContactMethod.CALL,
    "email": ContactMethod.ONLINE,
}


class LeadStatus(str, Enum):
    NEW = "NEW"
    CONTACTED = "CONTACTED"
    SCHEDULED = "SCHEDULED"
    DONE = "DONE"
    LOST = "LOST"
    SPAM = "SPAM"


LEAD_CREATED_EVENT = "lead_created"


@dataclass(frozen=True, slots=True)
class Lead:
    """
    Pure domain entity for a Lead.

    Immutability:
    - The entity is frozen. Operator updates produce a new row state in the
      store; they never touch priority_score or sla_due_at.
    """

    lead_id: UUID
    created_at: datetime
    lang: Lang
    source: str
    pest_category: str
    pest_detail: str
    urgency: Urgency
    postal_code: str
    city: str
    description: str
    contact_method: ContactMethod
    phone: str
    status: LeadStatus
    priority_score: int
    sla_due_at: datetime
    utm_source: Optional[str] = None
    utm_campaign: Optional[str] = None
    operator_notes: Optional[str] = None
    assigned_to: Optional[str] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        require_utc_timestamp("sla_due_at", self.sla_due_at)
        if self.updated_at is not None:
            require_utc_timestamp("updated_at", self.updated_at)

    @property
    def is_in_active_queue(self) -> bool:
        """Only NEW leads show up in the operator's queue; SPAM is kept for audit."""
        return self.status == LeadStatus.NEW


@dataclass(frozen=True, slots=True)
class LeadFile:
    """An uploaded attachment bound to an existing Lead."""

    file_id: UUID
    lead_id: UUID
    storage_bucket: str
    storage_path: str
    mime_type: str
    size_bytes: int
    created_at: datetime

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        if f"leads/{self.lead_id}/" not in self.storage_path:
            raise ValueError("storage_path must be scoped under the owning lead")
        if self.size_bytes < 0:
            raise ValueError("size_bytes must be >= 0")


@dataclass(frozen=True, slots=True)
class LeadEvent:
    """Append-only audit trail entry. actor is None for system-generated events."""

    event_id: UUID
    lead_id: UUID
    event_type: str
    created_at: datetime
    actor: Optional[str] = None
    payload: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        require_utc_timestamp("created_at", self.created_at)
        if not self.event_type:
            raise ValueError("event_type is required")
