"""
Health check router.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..config import settings
from ..database import DatabaseManager, get_db

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    database: str
    timestamp: str
    service: str = "optiid-service"
    version: str = "1.0.0"


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Health check",
)
def health_check(db: DatabaseManager = Depends(get_db)):
    """
    Report service health.

    Returns 200 when the database answers, 503 otherwise.
    """
    healthy = db.ping()
    body = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        database="connected" if healthy else "disconnected",
        timestamp=datetime.now(timezone.utc).isoformat(),
        service=settings.APP_NAME,
    )
    if healthy:
        return body
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body.model_dump())
