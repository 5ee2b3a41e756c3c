"""
Attachment uploader for existing leads.

Called once per file, independently of lead creation, so slow or failing photo
uploads never block the lead itself. Calls are stateless; concurrent uploads for
one lead need no coordination because every object gets its own path.

Steps:
1. Required fields present
2. MIME type on the image allow-list
3. Base64 decodes (optional data-URL prefix) and fits under the size ceiling
4. Lead exists (no orphan files)
5. Deterministic, lead-scoped storage path
6. Store the bytes (primary write; failure fails the call)
7. Record the lead_files row (secondary write; failure is logged loudly, the
   stored object is kept and reconciled out of band)
8. Return a time-limited signed URL for immediate display
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from uuid import UUID, uuid4

from domain.intake import UploadValidationError, parse_upload_submission
from domain.lead import LeadFile
from domain.time import utc_now
from repositories.lead_file_repository import insert_lead_file
from repositories.lead_repository import lead_exists
from repositories.storage_repository import create_signed_url, upload_object

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = frozenset({
    "image/jpeg",
    "image/png",
    "image/webp",
    "image/heic",
    "image/heif",
})
DEFAULT_MAX_FILE_BYTES = 10 * 1024 * 1024
DEFAULT_SIGNED_URL_TTL_SECONDS = 3600
DEFAULT_BUCKET = "interventia-intake"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


@dataclass(frozen=True, slots=True)
class UploadOutcome:
    status_code: int
    body: Dict[str, Any]

    @property
    def ok(self) -> bool:
        return self.status_code == 200


def _error(status_code: int, message: str) -> UploadOutcome:
    return UploadOutcome(status_code=status_code, body={"ok": False, "error": message})


def _too_large(max_bytes: int) -> UploadOutcome:
    return _error(400, f"File too large. Max {max_bytes // (1024 * 1024)}MB.")


def sanitize_file_name(file_name: str) -> str:
    """Replace anything but letters, digits, '.', '_' and '-' with '_'."""
    return _UNSAFE_FILENAME_CHARS.sub("_", file_name)


def build_storage_path(lead_id: UUID, file_name: str, uploaded_at: datetime, token: Optional[str] = None) -> str:
    """
    leads/<lead_id>/<timestamp>_<sanitized_filename>

    The timestamp is epoch milliseconds followed by a short random token, so two
    uploads of the same file name in the same millisecond still get distinct paths.
    """

    millis = int(uploaded_at.timestamp() * 1000)
    token = token if token is not None else secrets.token_hex(4)
    return f"leads/{lead_id}/{millis}-{token}_{sanitize_file_name(file_name)}"


def _base64_part(file_data: str) -> str:
    return file_data.split(",", 1)[1] if file_data.startswith("data:") else file_data


def max_encoded_length(max_bytes: int) -> int:
    """Longest base64 text that can decode to at most max_bytes."""
    return 4 * -(-max_bytes // 3)


def decode_file_data(file_data: str) -> bytes:
    """
    Decode base64 content, stripping an optional 'data:<mime>;base64,' prefix.

    Raises ValueError if the payload is not valid base64.
    """

    encoded = _base64_part(file_data)
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError("Invalid base64 file data") from e


class UploadService:
    def __init__(
        self,
        bucket: str = DEFAULT_BUCKET,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
        signed_url_ttl_seconds: int = DEFAULT_SIGNED_URL_TTL_SECONDS,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.bucket = bucket
        self.max_file_bytes = max_file_bytes
        self.signed_url_ttl_seconds = signed_url_ttl_seconds
        self._clock = clock

    def upload(self, body: Any) -> UploadOutcome:
        """Never raises; unexpected errors become a generic 500 outcome."""

        try:
            return self._upload(body)
        except Exception:
            logger.exception("Unhandled upload error")
            return _error(500, "Internal server error")

    def _upload(self, body: Any) -> UploadOutcome:
        if not isinstance(body, dict):
            return _error(400, "Invalid request body")

        try:
            request = parse_upload_submission(body)
        except UploadValidationError as e:
            return _error(400, str(e))

        logger.info(
            "Upload request",
            extra={"lead_id": request.lead_id, "file_name": request.file_name, "mime_type": request.mime_type},
        )

        if request.mime_type not in ALLOWED_MIME_TYPES:
            return _error(400, "Invalid file type. Only images allowed.")

        if len(_base64_part(request.file_data)) > max_encoded_length(self.max_file_bytes):
            return _too_large(self.max_file_bytes)

        try:
            content = decode_file_data(request.file_data)
        except ValueError:
            return _error(400, "Invalid file data")
        if not content:
            return _error(400, "Invalid file data")
        if len(content) > self.max_file_bytes:
            return _too_large(self.max_file_bytes)

        try:
            lead_id = UUID(request.lead_id)
        except ValueError:
            return _error(400, "Invalid lead_id")

        if not lead_exists(lead_id):
            return _error(404, "Lead not found")

        uploaded_at = self._clock()
        storage_path = build_storage_path(lead_id, request.file_name, uploaded_at)

        try:
            upload_object(self.bucket, storage_path, content, request.mime_type)
        except Exception:
            logger.exception(
                "Storage upload failed",
                extra={"lead_id": str(lead_id), "storage_path": storage_path},
            )
            return _error(500, "Failed to upload file")

        logger.info("Upload successful", extra={"lead_id": str(lead_id), "storage_path": storage_path})

        lead_file = LeadFile(
            file_id=uuid4(),
            lead_id=lead_id,
            storage_bucket=self.bucket,
            storage_path=storage_path,
            mime_type=request.mime_type,
            size_bytes=len(content),
            created_at=uploaded_at,
        )
        file_id: Optional[str] = str(lead_file.file_id)
        try:
            insert_lead_file(lead_file)
        except Exception:
            # Object stays in the bucket without a lead_files row.
            logger.error(
                "Stored file has no lead_files row; reconcile manually",
                exc_info=True,
                extra={
                    "lead_id": str(lead_id),
                    "storage_bucket": self.bucket,
                    "storage_path": storage_path,
                    "size_bytes": len(content),
                },
            )
            file_id = None

        signed_url: Optional[str] = None
        try:
            signed_url = create_signed_url(self.bucket, storage_path, self.signed_url_ttl_seconds)
        except Exception:
            logger.warning(
                "Could not sign URL for uploaded file",
                exc_info=True,
                extra={"lead_id": str(lead_id), "storage_path": storage_path},
            )

        return UploadOutcome(
            status_code=200,
            body={
                "ok": True,
                "file_id": file_id,
                "storage_path": storage_path,
                "signed_url": signed_url,
            },
        )
