"""Health check endpoint."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from contactrelay.api.models import HealthResponse
from contactrelay.version import __version__

router = APIRouter(prefix="/api", tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Check if the API is running",
)
async def health_check(request: Request) -> JSONResponse:
    """Health check endpoint.

    Returns:
        JSONResponse indicating service health
    """
    health = HealthResponse(
        version=__version__,
        service=request.app.state.config.service.service_name,
    )
    return JSONResponse(
        content=health.model_dump(),
        headers={"Cache-Control": "no-cache"},
    )
