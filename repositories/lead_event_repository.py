"""
Lead event repository (persistence).

Append-only audit trail. Rows are inserted and read, never updated or deleted.
"""

from __future__ import annotations

from typing import Any, List, Mapping
from uuid import UUID

from domain.lead import LeadEvent
from repositories.client import get_supabase
from repositories.lead_repository import _parse_utc_datetime, _raise_on_error, _to_iso_utc

_LEAD_EVENTS_TABLE: str = "lead_events"


def _event_to_row(event: LeadEvent) -> dict[str, Any]:
    return {
        "id": str(event.event_id),
        "lead_id": str(event.lead_id),
        "actor": event.actor,
        "event_type": event.event_type,
        "payload": dict(event.payload),
        "created_at": _to_iso_utc(event.created_at),
    }


def _row_to_event(row: Mapping[str, Any]) -> LeadEvent:
    return LeadEvent(
        event_id=UUID(str(row["id"])),
        lead_id=UUID(str(row["lead_id"])),
        event_type=str(row["event_type"]),
        created_at=_parse_utc_datetime(row["created_at"]),
        actor=row.get("actor") or None,
        payload=row.get("payload") or {},
    )


def insert_lead_event(event: LeadEvent) -> None:
    """
    Append one event.

    Raises RuntimeError if Supabase returns an error response. Callers writing
    events as a secondary step are expected to catch and log.
    """

    response = get_supabase().table(_LEAD_EVENTS_TABLE).insert(_event_to_row(event)).execute()
    _raise_on_error(response, "insert lead event")


def list_events_for_lead(lead_id: UUID) -> List[LeadEvent]:
    """Events for one lead, newest first."""

    response = (
        get_supabase().table(_LEAD_EVENTS_TABLE)
        .select("*")
        .eq("lead_id", str(lead_id))
        .order("created_at", desc=True)
        .execute()
    )
    _raise_on_error(response, "list lead events")

    rows = getattr(response, "data", None) or []
    return [_row_to_event(row) for row in rows]


__all__ = ["insert_lead_event", "list_events_for_lead"]
