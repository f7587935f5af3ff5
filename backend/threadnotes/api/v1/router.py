from __future__ import annotations

from fastapi import APIRouter

from .endpoints import health, recordings, threads

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(threads.router, prefix="/threads", tags=["threads"])
api_router.include_router(recordings.router, prefix="/recordings", tags=["recordings"])
