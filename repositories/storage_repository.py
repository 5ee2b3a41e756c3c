"""
Attachment storage (Supabase Storage).

Objects live in a single private bucket and are only reachable through
time-limited signed URLs.
"""

from __future__ import annotations

from typing import Any

from repositories.client import get_supabase

_CACHE_CONTROL_SECONDS = "3600"


def upload_object(bucket: str, path: str, data: bytes, content_type: str) -> None:
    """
    Store bytes at `path`. Never overwrites an existing object.

    Raises whatever the storage client raises (StorageException on an error
    response) or RuntimeError for an error-shaped response.
    """

    response = get_supabase().storage.from_(bucket).upload(
        path=path,
        file=data,
        file_options={
            "content-type": content_type,
            "cache-control": _CACHE_CONTROL_SECONDS,
            "upsert": "false",
        },
    )
    error = getattr(response, "error", None)
    if error:
        raise RuntimeError(f"Failed to upload object {path}: {error}")


def _signed_url_from(response: Any) -> str | None:
    # storage3 has returned both spellings across releases.
    if isinstance(response, dict):
        return response.get("signedURL") or response.get("signedUrl")
    return getattr(response, "signed_url", None)


def create_signed_url(bucket: str, path: str, expires_in: int) -> str:
    """
    Create a time-limited read URL for a private object.

    Raises RuntimeError if the storage backend returns no URL.
    """

    response = get_supabase().storage.from_(bucket).create_signed_url(path, expires_in)
    url = _signed_url_from(response)
    if not url:
        raise RuntimeError(f"Failed to sign URL for {path}")
    return url


__all__ = ["upload_object", "create_signed_url"]
