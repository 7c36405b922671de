"""
Health Check Routes
"""

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from actionhub import __version__
from actionhub.api.dependencies import get_components

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, Any]:
    """Basic health check."""
    return {"status": "healthy", "version": __version__}


@router.get("/health/ready")
async def readiness_check(
    components: dict[str, Any] = Depends(get_components),
):
    """Readiness check: the store is reachable and the dispatcher is wired."""
    if "dispatcher" not in components:
        return JSONResponse({"status": "not_ready"}, status_code=503)

    actions = await components["store"].list_actions(enabled_only=True)
    return {"status": "ready", "actions": len(actions)}


@router.get("/health/live")
async def liveness_check() -> dict[str, Any]:
    """Liveness check for Kubernetes."""
    return {"status": "alive"}
