"""Health check endpoints."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from piecework_payroll import __version__
from piecework_payroll.api.dependencies import DbSession

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    timestamp: datetime
    database: str


async def _database_status(db: DbSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("Database health probe failed: %s", e)
        return "unhealthy"
    return "healthy"


@router.get("/health", response_model=HealthResponse)
async def health_check(db: DbSession) -> HealthResponse:
    """API and database health; degraded when the database is unreachable."""
    database = await _database_status(db)
    return HealthResponse(
        status="healthy" if database == "healthy" else "degraded",
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        database=database,
    )


@router.get("/ready")
async def readiness_check(db: DbSession, response: Response) -> dict[str, str]:
    """Ready only when payroll rebuilds can reach storage."""
    if await _database_status(db) != "healthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {"status": "unavailable"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
