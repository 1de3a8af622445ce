"""
SportConnect Backend — Health Check Route
=========================================

What:  GET /health for container probes and load balancers.
How:   Runs `SELECT 1` against the database and reads the geocoder's
       circuit breaker state (no outbound call).

    Status levels:
    - healthy:   database reachable, geocoder circuit closed (HTTP 200)
    - degraded:  geocoder circuit open; feeds and toggles still work (HTTP 200)
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from sportconnect import __version__
from sportconnect import database
from sportconnect.schemas.social import HealthResponse
from sportconnect.services.geocoding_service import CircuitBreaker, geocoding_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    geocoder_status = "available"
    overall = "healthy"

    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    if geocoding_service.circuit_breaker.state == CircuitBreaker.OPEN:
        geocoder_status = "circuit_open"
        if overall == "healthy":
            overall = "degraded"

    if overall == "unhealthy":
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        geocoder=geocoder_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
