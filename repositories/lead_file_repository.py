"""
Lead file repository (persistence).

Metadata rows for attachments already written to the storage bucket.
"""

from __future__ import annotations

from typing import Any, List, Mapping
from uuid import UUID

from domain.lead import LeadFile
from repositories.client import get_supabase
from repositories.lead_repository import _parse_utc_datetime, _raise_on_error, _to_iso_utc

_LEAD_FILES_TABLE: str = "lead_files"


def _file_to_row(lead_file: LeadFile) -> dict[str, Any]:
    return {
        "id": str(lead_file.file_id),
        "lead_id": str(lead_file.lead_id),
        "storage_bucket": lead_file.storage_bucket,
        "storage_path": lead_file.storage_path,
        "mime_type": lead_file.mime_type,
        "size_bytes": lead_file.size_bytes,
        "created_at": _to_iso_utc(lead_file.created_at),
    }


def _row_to_file(row: Mapping[str, Any]) -> LeadFile:
    return LeadFile(
        file_id=UUID(str(row["id"])),
        lead_id=UUID(str(row["lead_id"])),
        storage_bucket=str(row.get("storage_bucket") or ""),
        storage_path=str(row["storage_path"]),
        mime_type=str(row["mime_type"]),
        size_bytes=int(row["size_bytes"]),
        created_at=_parse_utc_datetime(row["created_at"]),
    )


def insert_lead_file(lead_file: LeadFile) -> None:
    """
    Record an uploaded attachment.

    Raises RuntimeError if Supabase returns an error response.
    """

    response = get_supabase().table(_LEAD_FILES_TABLE).insert(_file_to_row(lead_file)).execute()
    _raise_on_error(response, "insert lead file")


def list_files_for_lead(lead_id: UUID) -> List[LeadFile]:
    """Attachments for one lead, oldest first."""

    response = (
        get_supabase().table(_LEAD_FILES_TABLE)
        .select("*")
        .eq("lead_id", str(lead_id))
        .order("created_at")
        .execute()
    )
    _raise_on_error(response, "list lead files")

    rows = getattr(response, "data", None) or []
    return [_row_to_file(row) for row in rows]


__all__ = ["insert_lead_file", "list_files_for_lead"]
