"""Health check endpoint.

Accessible without authentication; reports nothing about sessions.
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


@router.get("/api/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Liveness probe for load balancers and container orchestration."""
    return HealthResponse(
        status="healthy",
        version=request.app.state.settings.app_version,
    )
