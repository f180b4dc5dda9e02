"""
Health Check Router

Provides health check endpoint for monitoring and load balancers.
The check runs a trivial query so a broken database shows up as 503.
"""

from fastapi import APIRouter
from sqlalchemy import text

from stuff_tracker.config import get_settings
from stuff_tracker.core.database import DbSession
from stuff_tracker.models.contracts.common import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """
    Health check endpoint.

    Returns:
        HealthResponse with status, version and descendant strategy

    Raises:
        OperationalError: If the database is unreachable (mapped to 503)
    """
    await db.execute(text("SELECT 1"))
    return HealthResponse(
        status="healthy",
        version="1.0.0",
        descendant_strategy=get_settings().descendant_strategy,
    )
