"""Health check."""

from datetime import datetime, timezone

from fastapi import APIRouter

from api.models import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(message="Server is running with WebSocket support", timestamp=datetime.now(timezone.utc))
