"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from clinic_scheduling.config import settings
from clinic_scheduling.core.redis_client import check_redis_connection
from clinic_scheduling.database import check_database_connection

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    """Detailed health check response model."""

    database: str
    redis: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check() -> HealthResponse:
    """Basic health check endpoint."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
    )


@router.get(
    "/health/detailed",
    response_model=DetailedHealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Detailed health check with database and cache status.

    Redis only caches tenant settings, so it reports ``disabled`` when
    turned off and does not degrade the overall status in that case.

    Returns:
        Detailed health status including dependencies
    """
    db_healthy = await check_database_connection()
    if settings.redis_enabled:
        redis_healthy = await check_redis_connection()
        redis_status = "healthy" if redis_healthy else "unhealthy"
    else:
        redis_healthy = True
        redis_status = "disabled"

    return DetailedHealthResponse(
        status="healthy" if db_healthy and redis_healthy else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        redis=redis_status,
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Simple ping endpoint."""
    return {"message": "pong"}
