"""
Intake API Endpoints.

Public endpoint receiving lead submissions from the website form.
"""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from api.dependencies import get_intake_service
from api.models import ErrorResponse, IntakeResponse
from services.intake_service import IntakeService
from services.rate_limiter import UNKNOWN_IDENTITY

router = APIRouter()


def client_identity(request: Request) -> str:
    """First hop of X-Forwarded-For (set by the edge proxy), else 'unknown'."""

    forwarded = request.headers.get("x-forwarded-for", "")
    first = forwarded.split(",")[0].strip()
    return first or UNKNOWN_IDENTITY


async def read_json_body(request: Request) -> Any:
    """Parsed JSON body, or None when the body is not valid JSON."""

    try:
        return await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


@router.post(
    "/intake",
    response_model=IntakeResponse,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Submit Lead",
    description="Create a lead from the public onboarding form. Spam-flagged submissions are acknowledged like any other."
)
async def submit_intake(request: Request, service: IntakeService = Depends(get_intake_service)):
    """
    Submit a pest-control request.

    **Process:**
    1. Per-IP rate limit (5 requests per 60 seconds)
    2. Required field checks, first missing field reported
    3. Spam scoring (flagged leads are stored with status SPAM)
    4. Priority score and SLA deadline computed once
    5. Lead stored, `lead_created` event recorded

    **Example request:**
    ```json
    {
      "lang": "FR",
      "pest_category": "insects",
      "pest_detail": "punaises de lit",
      "urgency": "IMMEDIATE",
      "postal_code": "1000",
      "city": "Bruxelles",
      "description": "Piqures depuis une semaine",
      "contact_method": "WHATSAPP",
      "phone": "+32470123456",
      "hp": ""
    }
    ```
    """
    body = await read_json_body(request)
    outcome = await run_in_threadpool(
        service.submit,
        body,
        client_identity(request),
        request.headers.get("user-agent"),
    )
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)
