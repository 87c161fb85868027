"""Health check endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel

from session_broker.config import settings
from session_broker.core.redis_client import check_redis_connection
from session_broker.database import check_database_connection

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
    identity_provider: str


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    tags=["Health"],
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
    tags=["Health"],
    summary="Detailed health check",
)
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Detailed health check with profile store, cache and provider status.

    Redis is reported as ``disabled`` when the profile cache is turned off
    and does not degrade the overall status in that case.
    """
    db_healthy = await check_database_connection()

    if settings.profile_cache_enabled:
        redis_healthy = await check_redis_connection()
        redis_status = "healthy" if redis_healthy else "unhealthy"
    else:
        redis_healthy = True
        redis_status = "disabled"

    provider_configured = bool(settings.supabase_url and settings.supabase_service_role_key)

    return DetailedHealthResponse(
        status="healthy" if db_healthy and redis_healthy and provider_configured else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_healthy else "unhealthy",
        redis=redis_status,
        identity_provider="configured" if provider_configured else "unconfigured",
    )


@router.get(
    "/ping",
    status_code=status.HTTP_200_OK,
    tags=["Health"],
    summary="Simple ping",
)
async def ping() -> dict[str, str]:
    """Simple ping endpoint."""
    return {"message": "pong"}
