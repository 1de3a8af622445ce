"""
SportConnect Backend — FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       `lifespan` sets up logging on startup and closes the database pool
       and the geocoder's HTTP client on shutdown.
Who:   uvicorn (`uvicorn sportconnect.main:app`) and the API tests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  RequestID → AccessLog → GZip → CORS        │
    │                                                          │
    │  Routes:                                                 │
    │   /api/feed/*   /api/posts/*   /api/users/*              │
    │   /api/geocode/search          /health                   │
    │                                                          │
    │  Exception Handlers:                                     │
    │   Validation→400  NotFound→404  Conflict→409             │
    │   Geocoding/Circuit→503  Database→500                    │
    └──────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from sportconnect import __version__
from sportconnect.config import settings
from sportconnect.database import dispose_engine
from sportconnect.exceptions import (
    CircuitBreakerOpenError,
    DatabaseError,
    GeocodingServiceError,
    NotFoundError,
    SportConnectError,
    TransactionConflictError,
    ValidationError,
)
from sportconnect.middleware.logging import RequestLoggingMiddleware
from sportconnect.middleware.request_id import RequestIDMiddleware, request_id_var
from sportconnect.routes import feed, geocode, health, posts, users
from sportconnect.services.geocoding_service import geocoding_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    Format: 2026-05-02T18:04:11 [INFO] sportconnect.services.feed_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request chatter from these is covered by sportconnect.access
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("SportConnect Backend %s starting up...", __version__)
    logger.info(
        "Feeds: recommended=%d recent=%d pool=%d threshold=%.0f",
        settings.recommended_feed_limit,
        settings.recent_feed_limit,
        settings.candidate_pool_size,
        settings.recommended_threshold,
    )
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("SportConnect Backend shutting down...")
    await geocoding_service.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(code: str, exc: SportConnectError, include_details: bool = True) -> dict:
    body = {
        "error": code,
        "message": exc.message,
        "request_id": request_id_var.get(""),
    }
    if include_details and exc.context:
        body["details"] = dict(exc.context)
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the SportConnectError hierarchy to HTTP responses.

    Handler hierarchy:
        ValidationError          → 400
        NotFoundError            → 404
        TransactionConflictError → 409
        GeocodingServiceError    → 503 (+ Retry-After when known)
        CircuitBreakerOpenError  → 503 + Retry-After
        DatabaseError            → 500, generic message
        SportConnectError        → 500
        Exception                → 500, stack trace logged only
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        body = _error_body("validation_error", exc)
        if exc.field:
            body.setdefault("details", {})["field"] = exc.field
        return JSONResponse(status_code=400, content=body)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc))

    @app.exception_handler(TransactionConflictError)
    async def handle_conflict(request: Request, exc: TransactionConflictError):
        logger.warning("[%s] Toggle conflict: %s", request_id_var.get(""), exc.message)
        return JSONResponse(status_code=409, content=_error_body("conflict", exc))

    @app.exception_handler(CircuitBreakerOpenError)
    async def handle_circuit_breaker(request: Request, exc: CircuitBreakerOpenError):
        logger.warning("[%s] Circuit breaker open: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=503,
            content=_error_body("service_unavailable", exc),
            headers={"Retry-After": str(exc.recovery_time)},
        )

    @app.exception_handler(GeocodingServiceError)
    async def handle_geocoding_error(request: Request, exc: GeocodingServiceError):
        logger.error("[%s] Geocoding error: %s", request_id_var.get(""), exc.message)
        headers = {}
        if exc.retry_after:
            headers["Retry-After"] = str(exc.retry_after)
        return JSONResponse(
            status_code=503,
            content=_error_body("geocoding_service_error", exc),
            headers=headers,
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(SportConnectError)
    async def handle_app_error(request: Request, exc: SportConnectError):
        logger.error("[%s] %s: %s", request_id_var.get(""), type(exc).__name__, exc.message)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc, include_details=False),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="SportConnect API",
        description=(
            "Social feed for recreational athletes. Posts are ranked by how close "
            "their authors are and how similar their sport ratings are; likes and "
            "follows are atomic toggles."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Last added runs first: RequestID → AccessLog → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(feed.router)
    app.include_router(posts.router)
    app.include_router(users.router)
    app.include_router(geocode.router)
    app.include_router(health.router)

    return app


app = create_app()
