"""Health and version endpoints for the TuneFlow uploader."""

import time

from fastapi import APIRouter

from tuneflow.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns:
        dict: Health status response with status, service, and version fields
    """
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
    }


@router.get("/api/version")
async def deployment_version() -> dict:
    """Identify the running deployment so clients can detect a new release.

    Falls back to the current time in milliseconds when no deployment id is
    configured, which makes every poll look like a new version.
    """
    return {"version": settings.DEPLOYMENT_ID or str(int(time.time() * 1000))}
