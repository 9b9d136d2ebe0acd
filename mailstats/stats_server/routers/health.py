"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends

from mailstats.common.config import get_settings
from mailstats.schemas.response import HealthResponse
from mailstats.stats_server.services.stats_service import StatsService, get_stats_service

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(
    stats_service: StatsService = Depends(get_stats_service),
) -> HealthResponse:
    """
    Health check endpoint.

    Returns service status and cache backend health. A failing cache only
    degrades the service: statistics still resolve upstream or synthetically.
    """
    settings = get_settings()
    cache_healthy = await stats_service.health_check()

    return HealthResponse(
        status="healthy" if cache_healthy else "degraded",
        version=settings.app_version,
        cache_backend=stats_service.store.name,
        cache=cache_healthy,
    )


@router.get("/ping")
async def ping() -> dict:
    """Simple ping endpoint."""
    return {"pong": True}


@router.get("/ready")
async def readiness_check(
    stats_service: StatsService = Depends(get_stats_service),
) -> dict:
    """Readiness check for Kubernetes."""
    if not await stats_service.health_check():
        return {"ready": False, "reason": "Cache backend not ready"}

    return {"ready": True, **stats_service.status()}


@router.get("/live")
async def liveness_check() -> dict:
    """Liveness check for Kubernetes."""
    return {"alive": True}
