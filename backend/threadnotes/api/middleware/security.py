from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from threadnotes.utils.logging import get_logger

if TYPE_CHECKING:
    from fastapi import Request
    from starlette.types import ASGIApp

logger = get_logger(__name__)


class SecurityMiddleware(BaseHTTPMiddleware):
    """Security middleware to add essential security headers."""

    def __init__(self, app: ASGIApp, recordings_path: str = "/api/v1/recordings"):
        super().__init__(app)
        self._recordings_path = recordings_path

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Allow connections to our API host (including the recording socket) and Supabase
        csp_policy = (
            "default-src 'self'; "
            "script-src 'self'; "
            "img-src 'self' data: https:; "
            "media-src 'self' blob:; "
            "connect-src 'self' wss: https://*.supabase.co; "
            "frame-ancestors 'none';"
        )
        response.headers["Content-Security-Policy"] = csp_policy

        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"

        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
        response.headers["Pragma"] = "no-cache"

        if request.url.path.startswith(self._recordings_path) and request.method == "POST":
            client_ip = request.client.host if request.client else "unknown"

            logger.info(
                "Recording uploaded",
                extra={
                    "path": request.url.path,
                    "ip": client_ip,
                    "content_length": request.headers.get("content-length", "unknown"),
                    "status_code": response.status_code,
                },
            )

        return response
