"""
Health check endpoints
- /health (liveness): process is up, no dependency checks
- /health/ready (readiness): database answers SELECT 1

Reference: https://kubernetes.io/docs/tasks/configure-pod-container/configure-liveness-readiness-startup-probes/
"""
import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel
from sqlalchemy import text

from retailops.core.database import engine

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/health",
    tags=["health"],
)


class HealthResponse(BaseModel):
    status: str
    message: str


@router.get(
    "",
    response_model=HealthResponse,
    summary="Health check (liveness)",
    status_code=status.HTTP_200_OK,
)
async def health_check() -> HealthResponse:
    """Liveness probe; does not touch the database"""
    return HealthResponse(status="healthy", message="Service is running")


@router.get(
    "/ready",
    response_model=HealthResponse,
    summary="Readiness check",
    status_code=status.HTTP_200_OK,
    responses={
        503: {"description": "Service is not ready (database unavailable)"}
    },
)
async def readiness_check() -> HealthResponse:
    """
    Readiness probe

    Raises:
        HTTPException: 503 if database is unavailable
    """
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Readiness check failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is not ready - database unavailable",
        )
    return HealthResponse(status="ready", message="Service is ready to serve traffic")
