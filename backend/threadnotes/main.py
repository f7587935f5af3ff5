from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.middleware.trustedhost import TrustedHostMiddleware
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .api.middleware.security import SecurityMiddleware
from .api.v1.router import api_router
from .config import settings
from .dependencies import build_container
from .utils.logging import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from .dependencies import ServiceContainer

logger = get_logger(__name__)


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """Build the API application.

    The service container is created on startup from settings unless one is
    passed in, and closed on shutdown either way.
    """
    setup_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.container = container or build_container(settings)
        logger.info("Service container ready (store: %s)", settings.store_backend)
        try:
            yield
        finally:
            await app.state.container.aclose()

    app = FastAPI(
        title="Thread Notes API",
        debug=settings.debug,
        version="0.1.0",
        root_path=settings.root_path or "",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_origin_regex=settings.cors_origin_regex,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=[
            "Accept",
            "Accept-Language",
            "Content-Language",
            "Content-Type",
            "X-Requested-With",
        ],
        max_age=600,  # Cache preflight requests for 10 minutes
    )

    # Proxy headers (X-Forwarded-*) when behind ALB/ingress
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=["*"])

    # Trusted hosts (configure in env for production)
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_hosts)

    # GZip compression
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(SecurityMiddleware, recordings_path=f"{settings.api_prefix}/recordings")

    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()
