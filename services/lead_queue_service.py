"""
Operator queue: read and update clients of the lead data model.

Handles:
- The active queue (NEW leads, highest priority first, oldest first on ties)
- Lead detail with attachments (fresh signed URLs) and the event trail
- Operator updates: status, notes, assignment

Priority and SLA are never recomputed here. Every update appends a best-effort
event; a failed event write is logged and does not undo the update.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional
from uuid import UUID, uuid4

from domain.lead import Lead, LeadEvent, LeadFile, LeadStatus
from domain.time import utc_now
from repositories.lead_event_repository import insert_lead_event, list_events_for_lead
from repositories.lead_file_repository import list_files_for_lead
from repositories.lead_repository import get_lead_by_id, list_leads_by_status, update_lead_fields
from repositories.storage_repository import create_signed_url

logger = logging.getLogger(__name__)

STATUS_CHANGED_EVENT = "status_changed"
NOTES_UPDATED_EVENT = "notes_updated"
LEAD_ASSIGNED_EVENT = "lead_assigned"


class LeadNotFoundError(LookupError):
    """Raised when an operator action targets a lead that does not exist."""

    def __init__(self, lead_id: UUID):
        self.lead_id = lead_id
        super().__init__(f"Lead not found: {lead_id}")


@dataclass(frozen=True, slots=True)
class AttachmentView:
    lead_file: LeadFile
    signed_url: Optional[str]


@dataclass(frozen=True, slots=True)
class LeadDetail:
    lead: Lead
    files: List[AttachmentView]
    events: List[LeadEvent]


@dataclass(frozen=True, slots=True)
class LeadUpdate:
    """Operator changes; None means 'leave unchanged'."""
    status: Optional[LeadStatus] = None
    operator_notes: Optional[str] = None
    assigned_to: Optional[str] = None

    def is_empty(self) -> bool:
        return self.status is None and self.operator_notes is None and self.assigned_to is None


class LeadQueueService:
    def __init__(
        self,
        bucket: str,
        signed_url_ttl_seconds: int = 3600,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.bucket = bucket
        self.signed_url_ttl_seconds = signed_url_ttl_seconds
        self._clock = clock

    def active_queue(self, limit: int = 100) -> List[Lead]:
        return list_leads_by_status(LeadStatus.NEW, limit=limit)

    def lead_detail(self, lead_id: UUID) -> LeadDetail:
        lead = get_lead_by_id(lead_id)
        if lead is None:
            raise LeadNotFoundError(lead_id)

        files = [AttachmentView(lead_file=f, signed_url=self._sign(f)) for f in list_files_for_lead(lead_id)]
        return LeadDetail(lead=lead, files=files, events=list_events_for_lead(lead_id))

    def _sign(self, lead_file: LeadFile) -> Optional[str]:
        try:
            return create_signed_url(
                lead_file.storage_bucket or self.bucket,
                lead_file.storage_path,
                self.signed_url_ttl_seconds,
            )
        except Exception:
            logger.warning(
                "Could not sign URL for lead file",
                exc_info=True,
                extra={"lead_id": str(lead_file.lead_id), "storage_path": lead_file.storage_path},
            )
            return None

    def update_lead(self, lead_id: UUID, update: LeadUpdate, actor: Optional[str] = None) -> Lead:
        """
        Apply operator changes and append one event per changed field.

        Raises LeadNotFoundError if the lead does not exist.
        """

        current = get_lead_by_id(lead_id)
        if current is None:
            raise LeadNotFoundError(lead_id)
        if update.is_empty():
            return current

        changes: dict = {}
        events: List[tuple[str, dict]] = []
        if update.status is not None and update.status != current.status:
            changes["status"] = update.status
            events.append((STATUS_CHANGED_EVENT, {"from": current.status.value, "to": update.status.value}))
        if update.operator_notes is not None and update.operator_notes != current.operator_notes:
            changes["operator_notes"] = update.operator_notes
            events.append((NOTES_UPDATED_EVENT, {}))
        if update.assigned_to is not None and update.assigned_to != current.assigned_to:
            changes["assigned_to"] = update.assigned_to
            events.append((LEAD_ASSIGNED_EVENT, {"assigned_to": update.assigned_to}))

        if not changes:
            return current

        now = self._clock()
        updated = update_lead_fields(lead_id, changes, updated_at=now)
        if updated is None:
            raise LeadNotFoundError(lead_id)

        for event_type, payload in events:
            self._record_event(lead_id, event_type, payload, actor, now)

        logger.info(
            "Lead updated by operator",
            extra={"lead_id": str(lead_id), "actor": actor, "fields": sorted(changes)},
        )
        return updated

    def _record_event(self, lead_id: UUID, event_type: str, payload: dict, actor: Optional[str], now: datetime) -> None:
        try:
            insert_lead_event(
                LeadEvent(
                    event_id=uuid4(),
                    lead_id=lead_id,
                    event_type=event_type,
                    created_at=now,
                    actor=actor,
                    payload=payload,
                )
            )
        except Exception:
            logger.exception(
                "Failed to record operator event",
                extra={"lead_id": str(lead_id), "event_type": event_type},
            )
