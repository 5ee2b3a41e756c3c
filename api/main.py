"""
Interventia Intake API - Main Application.

FastAPI application receiving pest-control requests from the public website,
plus the operator queue endpoints.

Run locally with:
    uvicorn api.main:app --reload
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import __version__
from api.config import configure_logging

configure_logging()
logger = logging.getLogger(__name__)

# Create FastAPI application
app = FastAPI(
    title="Interventia Intake API",
    description="Lead intake, photo uploads and operator queue for Interventia pest control",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Public form endpoints are called cross-origin from the website.
# The operator UI is served from the same origin.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["POST", "OPTIONS"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"ok": False, "error": f"Invalid value for field: {location}" if location else message},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled API error", extra={"path": request.url.path, "method": request.method})
    return JSONResponse(status_code=500, content={"ok": False, "error": "Internal server error"})


@app.get("/health", tags=["Health"])
def health_check():
    """
    Health check endpoint.

    Returns the API status and version.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "service": "interventia-intake-api"
    }


@app.get("/", tags=["Root"])
def root():
    """
    Root endpoint with API information.
    """
    return {
        "message": "Interventia Intake API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


# Import and include routers
from api.routers import intake, uploads, leads

app.include_router(intake.router, prefix="/api/v1", tags=["Intake"])
app.include_router(uploads.router, prefix="/api/v1", tags=["Uploads"])
app.include_router(leads.router, prefix="/api/v1", tags=["Leads"])
