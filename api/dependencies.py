"""
Service wiring for the routers.

Services are built once per process from the settings. The intake service owns
the rate limiter, so it must be a single shared instance. Tests replace these
providers through `app.dependency_overrides`.
"""

from __future__ import annotations

import logging
import secrets
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException

from api.config import Settings, get_settings
from services.intake_service import IntakeService
from services.lead_queue_service import LeadQueueService
from services.rate_limiter import RateLimiter
from services.upload_service import UploadService

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_intake_service() -> IntakeService:
    settings = get_settings()
    limiter = RateLimiter(
        window_seconds=settings.rate_limit_window_seconds,
        max_requests=settings.rate_limit_max_requests,
    )
    return IntakeService(rate_limiter=limiter)


@lru_cache(maxsize=1)
def get_upload_service() -> UploadService:
    settings = get_settings()
    return UploadService(
        bucket=settings.storage_bucket,
        max_file_bytes=settings.max_upload_bytes,
        signed_url_ttl_seconds=settings.signed_url_ttl_seconds,
    )


@lru_cache(maxsize=1)
def get_queue_service() -> LeadQueueService:
    settings = get_settings()
    return LeadQueueService(
        bucket=settings.storage_bucket,
        signed_url_ttl_seconds=settings.signed_url_ttl_seconds,
    )


def require_operator(
    x_operator_key: Optional[str] = Header(None),
    x_operator_id: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> Optional[str]:
    """
    Gate for operator endpoints. Returns the operator id used as event actor.

    503 when no operator key is configured, 401 on a missing or wrong key.
    """

    if not settings.operator_api_key:
        raise HTTPException(status_code=503, detail="Operator access is not configured")
    if not x_operator_key or not secrets.compare_digest(
        x_operator_key.encode("utf-8"), settings.operator_api_key.encode("utf-8")
    ):
        logger.warning("Rejected operator request", extra={"operator_id": x_operator_id})
        raise HTTPException(status_code=401, detail="Invalid operator key")
    return x_operator_id
