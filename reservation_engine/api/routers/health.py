"""
Health check endpoints for orchestration probes.

- /health, /health/live: liveness, always 200 while the process runs
- /health/db: database connectivity
- /health/ready: readiness, 503 until every dependency is reachable
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from reservation_engine.api.deps import get_db_session
from reservation_engine.infrastructure.circuit_breaker import payout_breaker, stripe_breaker

logger = logging.getLogger(__name__)

router = APIRouter()

SERVICE_NAME = "reservation-engine"


@router.get("/health")
async def health_check():
    return {"status": "ok", "service": SERVICE_NAME}


@router.get("/health/live")
async def health_check_live():
    return {"status": "ok", "service": SERVICE_NAME}


async def _database_ok(session: AsyncSession) -> bool:
    try:
        result = await session.execute(text("SELECT 1"))
        result.scalar()
        return True
    except Exception as e:
        logger.error("Database health check failed", exc_info=e)
        return False


@router.get("/health/db")
async def health_check_db(session: AsyncSession = Depends(get_db_session)):
    if await _database_ok(session):
        return {"status": "healthy", "component": "database"}
    return JSONResponse(
        status_code=503,
        content={
            "status": "unhealthy",
            "component": "database",
            "error": "Database connection failed",
        },
    )


@router.get("/health/ready")
async def health_check_ready(session: AsyncSession = Depends(get_db_session)):
    """
    Readiness: database reachable. Open payment circuits are reported but do
    not fail readiness; bookings still record and settle once Stripe recovers.
    """
    health_status = {
        "status": "ready",
        "checks": {
            "stripe_circuit": stripe_breaker.current_state,
            "payout_circuit": payout_breaker.current_state,
        },
    }

    if not await _database_ok(session):
        health_status["status"] = "not_ready"
        health_status["checks"]["database"] = "unhealthy"
        return JSONResponse(status_code=503, content=health_status)

    health_status["checks"]["database"] = "healthy"
    return health_status
