from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe.

    Does not contact the registry or touch quota state.
    """

    return {"status": "ok"}
