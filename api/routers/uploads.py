"""
Uploads API Endpoints.

Attachment upload for an existing lead, one file per call.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from api.dependencies import get_upload_service
from api.models import ErrorResponse, UploadResponse
from api.routers.intake import read_json_body
from services.upload_service import UploadService

router = APIRouter()


@router.post(
    "/uploads",
    response_model=UploadResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    summary="Upload Lead Photo",
    description="Store one base64-encoded image for an existing lead and return a signed URL to display it."
)
async def upload_lead_file(request: Request, service: UploadService = Depends(get_upload_service)):
    """
    Upload one image for a lead.

    Allowed types: JPEG, PNG, WEBP, HEIC, HEIF. Maximum 10MB after decoding.
    `file_data` may carry a `data:<mime>;base64,` prefix.

    **Example request:**
    ```json
    {
      "lead_id": "123e4567-e89b-12d3-a456-426614174000",
      "file_name": "kitchen.jpg",
      "file_data": "data:image/jpeg;base64,/9j/4AAQSkZJRg...",
      "mime_type": "image/jpeg"
    }
    ```
    """
    body = await read_json_body(request)
    outcome = await run_in_threadpool(service.upload, body)
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)
