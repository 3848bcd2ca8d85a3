"""FastAPI dependencies exposing the app-scoped collaborators.

The quota tracker and registry client are built once by the application
factory and stored on ``app.state``. Routes receive them through these
dependencies, so each app instance (and each test) owns an isolated store.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from app.adapters.quota import AbstractQuotaTracker, InMemoryQuotaTracker
from app.adapters.registry.base import AbstractRegistryClient
from app.core.config import settings
from app.services.lookup_service import LookupService


def build_quota_tracker() -> AbstractQuotaTracker:
    """Create the quota tracker from configuration.

    Returns:
        AbstractQuotaTracker: Fresh, empty tracker.
    """
    return InMemoryQuotaTracker(timezone=settings.app.quota_timezone)


def get_quota_tracker(request: Request) -> AbstractQuotaTracker:
    return request.app.state.quota_tracker


def get_registry_client(request: Request) -> AbstractRegistryClient:
    return request.app.state.registry_client


def get_lookup_service(
    tracker: Annotated[AbstractQuotaTracker, Depends(get_quota_tracker)],
    client: Annotated[AbstractRegistryClient, Depends(get_registry_client)],
) -> LookupService:
    """Assemble the lookup workflow for the current request."""
    return LookupService(
        tracker,
        client,
        reference_inn=settings.upstream.reference_inn,
        batch_concurrency=settings.app.batch_concurrency,
    )
