from __future__ import annotations

from fastapi import APIRouter

from app.core.config import settings

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring. Not rate limited and needs no
    session.

    Returns:
        dict: Service status, environment name and storage backend.
    """

    return {
        "status": "ok",
        "environment": settings.app_env,
        "storage": settings.storage.backend,
    }
