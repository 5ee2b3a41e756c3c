"""
Lead repository (persistence).

This module provides *only* persistence operations for the Lead domain entity.
No business rules (spam scoring, priority, SLA) belong here.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Mapping
from uuid import UUID

from domain.lead import ContactMethod, Lang, Lead, LeadStatus, Urgency
from repositories.client import get_supabase

# Supabase table name for Lead records.
# Keep this aligned with your database schema.
_LEADS_TABLE: str = "leads"


def _to_iso_utc(dt: datetime) -> str:
    """
    Convert a timezone-aware datetime to an ISO-8601 string in UTC.
    """

    if dt.tzinfo is None or dt.utcoffset() is None:
        raise ValueError("timestamp must be timezone-aware (UTC)")
    return dt.astimezone(timezone.utc).isoformat()


def _parse_utc_datetime(value: Any) -> datetime:
    """
    Parse a Supabase timestamp into a timezone-aware UTC datetime.

    Supabase commonly returns ISO-8601 strings, sometimes with a trailing 'Z'.
    """

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        # Python's fromisoformat doesn't consistently accept 'Z' across versions.
        text = value.replace("Z", "+00:00")
        dt = datetime.fromisoformat(text)
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value)!r}")

    # If the backend returns a naive timestamp, interpret it as UTC so that the
    # domain model's UTC invariant is satisfied.
    if dt.tzinfo is None or dt.utcoffset() is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def _raise_on_error(response: Any, action: str) -> None:
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to {action}: {error}")


def _lead_to_row(lead: Lead) -> dict[str, Any]:
    """Convert a domain Lead to a Supabase row payload."""

    return {
        "id": str(lead.lead_id),
        "created_at": _to_iso_utc(lead.created_at),
        "lang": lead.lang.value,
        "source": lead.source,
        "utm_source": lead.utm_source,
        "utm_campaign": lead.utm_campaign,

        # Request
        "pest_category": lead.pest_category,
        "pest_detail": lead.pest_detail,
        "urgency": lead.urgency.value,
        "postal_code": lead.postal_code,
        "city": lead.city,
        "description": lead.description,

        # Contact
        "contact_method": lead.contact_method.value,
        "phone": lead.phone,

        # Triage (set once at intake)
        "status": lead.status.value,
        "priority_score": lead.priority_score,
        "sla_due_at": _to_iso_utc(lead.sla_due_at),

        # Operator fields
        "operator_notes": lead.operator_notes,
        "assigned_to": lead.assigned_to,
        "updated_at": _to_iso_utc(lead.updated_at or lead.created_at),
    }


def _row_to_lead(row: Mapping[str, Any]) -> Lead:
    """Convert a Supabase row into a domain Lead."""

    # Helper to convert empty strings to None
    def get_optional(key: str) -> str | None:
        value = row.get(key)
        return str(value) if value else None

    return Lead(
        lead_id=UUID(str(row["id"])),
        created_at=_parse_utc_datetime(row["created_at"]),
        lang=Lang(str(row["lang"])),
        source=str(row.get("source") or ""),
        pest_category=str(row["pest_category"]),
        pest_detail=str(row["pest_detail"]),
        urgency=Urgency(str(row["urgency"])),
        postal_code=str(row["postal_code"]),
        city=str(row["city"]),
        description=str(row["description"]),
        contact_method=ContactMethod(str(row["contact_method"])),
        phone=str(row["phone"]),
        status=LeadStatus(str(row["status"])),
        priority_score=int(row["priority_score"]),
        sla_due_at=_parse_utc_datetime(row["sla_due_at"]),
        utm_source=get_optional("utm_source"),
        utm_campaign=get_optional("utm_campaign"),
        operator_notes=get_optional("operator_notes"),
        assigned_to=get_optional("assigned_to"),
        updated_at=_parse_utc_datetime(row["updated_at"]) if row.get("updated_at") else None,
    )


def insert_lead(lead: Lead) -> None:
    """
    Insert a Lead into Supabase.

    Raises:
    - RuntimeError if Supabase returns an error response.
    - ValueError/TypeError for invalid domain values (e.g., timestamps).
    """

    payload = _lead_to_row(lead)
    response = get_supabase().table(_LEADS_TABLE).insert(payload).execute()
    _raise_on_error(response, "insert lead")


def get_lead_by_id(lead_id: UUID) -> Lead | None:
    """
    Fetch a Lead by ID.

    Returns:
    - Lead if found
    - None if no record exists for the given ID
    """

    response = (
        get_supabase().table(_LEADS_TABLE)
        .select("*")
        .eq("id", str(lead_id))
        .limit(1)
        .execute()
    )
    _raise_on_error(response, "fetch lead")

    rows = getattr(response, "data", None) or []
    if not rows:
        return None
    return _row_to_lead(rows[0])


def lead_exists(lead_id: UUID) -> bool:
    """Cheap existence check used before accepting an attachment."""

    response = (
        get_supabase().table(_LEADS_TABLE)
        .select("id")
        .eq("id", str(lead_id))
        .limit(1)
        .execute()
    )
    _raise_on_error(response, "check lead")
    return bool(getattr(response, "data", None))


def list_leads_by_status(status: LeadStatus, limit: int = 100) -> List[Lead]:
    """
    List leads with the given status, highest priority first, then oldest first.

    With status NEW this is the operator's active queue.
    """

    response = (
        get_supabase().table(_LEADS_TABLE)
        .select("*")
        .eq("status", status.value)
        .order("priority_score", desc=True)
        .order("created_at")
        .limit(limit)
        .execute()
    )
    _raise_on_error(response, "list leads")

    rows = getattr(response, "data", None) or []
    return [_row_to_lead(row) for row in rows]


def update_lead_fields(lead_id: UUID, changes: Mapping[str, Any], updated_at: datetime) -> Lead | None:
    """
    Apply operator column updates (status, operator_notes, assigned_to).

    priority_score and sla_due_at are rejected here; they are set once at intake.
    Returns the updated Lead, or None when no row matched.
    """

    allowed = {"status", "operator_notes", "assigned_to"}
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Columns not updatable by operators: {sorted(unknown)}")

    payload = {
        key: value.value if isinstance(value, LeadStatus) else value
        for key, value in changes.items()
    }
    payload["updated_at"] = _to_iso_utc(updated_at)

    response = (
        get_supabase().table(_LEADS_TABLE)
        .update(payload)
        .eq("id", str(lead_id))
        .execute()
    )
    _raise_on_error(response, "update lead")

    rows = getattr(response, "data", None) or []
    if not rows:
        return None
    return _row_to_lead(rows[0])


__all__ = [
    "insert_lead",
    "get_lead_by_id",
    "lead_exists",
    "list_leads_by_status",
    "update_lead_fields",
]
