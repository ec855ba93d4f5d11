"""
Health check endpoints.

Provides liveness and readiness probes. Ready means the card index is loaded.
"""

from fastapi import APIRouter, Request, Response, status
from pydantic import BaseModel

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    cards: int | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """
    Liveness probe.

    Returns healthy if the service is running.
    Does not check the card index.
    """
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(request: Request, response: Response) -> HealthResponse:
    """
    Readiness probe.

    Returns 503 until the card index has been loaded.
    """
    index = getattr(request.app.state, "card_index", None)
    if index is None:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not ready")
    return HealthResponse(status="ready", cards=len(index))
