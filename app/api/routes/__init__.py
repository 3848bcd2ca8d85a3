from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.registry import router as registry_router

__all__ = ["health_router", "registry_router"]
