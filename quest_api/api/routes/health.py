from __future__ import annotations

from fastapi import APIRouter

from quest_api.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe for load balancers; never rate limited."""

    return {"status": "ok", "env": settings.app_env}
