from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from threadnotes.config import settings
from threadnotes.dependencies import get_thread_service

if TYPE_CHECKING:
    from threadnotes.core.services.thread_service import ThreadService

router = APIRouter()


@router.get("/")
async def health_check():
    """Health check endpoint."""
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "healthy",
            "service": "threadnotes-api",
            "version": "0.1.0"
        }
    )


@router.get("/ready")
async def readiness_check(service: ThreadService = Depends(get_thread_service)):
    """Readiness check endpoint."""
    store_status = "connected"
    try:
        await service.list_threads(limit=1)
    except Exception as e:
        store_status = f"error: {str(e)}"

    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "status": "ready",
            "store": store_status,
            "store_backend": settings.store_backend,
            "api_prefix": settings.api_prefix
        }
    )
