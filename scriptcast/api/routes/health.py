"""Health check endpoints."""

from fastapi import APIRouter

from scriptcast import __version__
from scriptcast.config import get_settings
from scriptcast.models.responses import HealthResponse

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Returns service health status.
    """
    return HealthResponse(
        status="healthy",
        version=__version__,
    )


@router.get("/ready")
async def readiness_check() -> dict:
    """
    Readiness check for container orchestration.

    Ready once a service key is configured; generation cannot start without one.
    """
    settings = get_settings()
    return {
        "ready": bool(settings.gemini_api_key),
        "image_key": bool(settings.gemini_image_api_key),
    }


@router.get("/live")
async def liveness_check() -> dict:
    """
    Liveness check for container orchestration.

    Returns alive status if service is running.
    """
    return {"alive": True}
