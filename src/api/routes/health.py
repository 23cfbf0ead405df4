"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.v1.dependencies import get_storage
from core.config import settings
from infrastructure.storage.filesystem import FileSystemStorage

router = APIRouter(tags=["health"])

SERVICE_NAME = "prof"
SERVICE_VERSION = "0.1.0"


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str
    version: str
    timestamp: str
    environment: str
    storage: str | None = None


@router.get("/health", response_model=HealthResponse, summary="Basic health check")
async def health_check() -> HealthResponse:
    """
    Basic health check for load balancers.

    Returns service status without touching storage.
    """
    return HealthResponse(
        status="healthy",
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=settings.app_env,
    )


@router.get(
    "/health/detailed",
    response_model=HealthResponse,
    summary="Detailed health check",
)
async def detailed_health_check(
    storage: FileSystemStorage = Depends(get_storage),
) -> HealthResponse:
    """
    Detailed health check including the storage directories.

    Use for monitoring dashboards that need to verify the data volume.
    """
    storage_status = storage.check()
    overall_status = "healthy" if storage_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall_status,
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=settings.app_env,
        storage=storage_status,
    )
