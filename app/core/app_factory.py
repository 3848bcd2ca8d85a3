"""Application factory for FastAPI app.

This is the composition root: the quota tracker and registry client are
constructed here, once per app, and handed to routes through
``app.core.dependencies``. Tests pass their own instances to get an isolated
store and a fake registry.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.adapters.quota import AbstractQuotaTracker
from app.adapters.registry import AbstractRegistryClient, create_registry_client
from app.api.routes import health_router, registry_router
from app.core.config import settings
from app.core.dependencies import build_quota_tracker
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info(
        "app.startup",
        extra={
            "app_env": settings.app_env,
            "upstream_base_url": settings.upstream.base_url,
            "daily_limit": app.state.quota_tracker.daily_limit,
        },
    )
    try:
        yield
    finally:
        await app.state.registry_client.aclose()
        logger.info("app.shutdown")


def create_app(
    *,
    quota_tracker: AbstractQuotaTracker | None = None,
    registry_client: AbstractRegistryClient | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        quota_tracker: Tracker to use; a fresh in-memory one by default.
        registry_client: Registry client to use; built from settings by default.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Registry Gateway",
        description=(
            "Forwards company and financial-data lookups to the Checko registry "
            "using the caller's API key, and enforces a daily quota of 100 "
            "registry calls per key. Every response reports requestsUsedToday "
            "and remainingRequests."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        lifespan=lifespan,
    )

    app.state.quota_tracker = (
        quota_tracker if quota_tracker is not None else build_quota_tracker()
    )
    app.state.registry_client = (
        registry_client if registry_client is not None else create_registry_client()
    )

    # Middleware
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            origin.strip()
            for origin in settings.app.cors_allow_origins.split(",")
            if origin.strip()
        ],
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS", "POST", "PUT"],
        allow_headers=["X-Requested-With", "Content-Type", "Authorization", "X-API-Key"],
    )

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(registry_router, prefix="/api")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
