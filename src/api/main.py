"""
FastAPI application for Gatherly.

This is the main entry point for the HTTP API, providing:
- Event and calendar endpoints (dual-written stores with read fallback)
- Invitation endpoints, open/click tracking and email provider webhooks
- Health endpoint
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from src.api.calendar_routes import router as calendar_router
from src.api.dependencies import (
    build_services,
    get_services,
    init_services,
    shutdown_services,
)
from src.api.event_routes import router as event_router
from src.api.invite_routes import router as invite_router
from src.api.middleware import RequestLoggingMiddleware
from src.api.models import HealthResponse
from src.api.webhook_routes import router as webhook_router
from src.config import Settings, get_settings
from src.database import check_connection, get_engine, get_session_factory, init_db
from src.integrations.exceptions import StoreError, StoreUnavailableError
from src.services.exceptions import (
    CalendarNotFoundError,
    InvalidTransitionError,
    PrimaryStoreError,
    SlugTakenError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    configure_logging(settings)
    settings.validate_production_config()

    logger.info("Starting Gatherly API")
    engine = get_engine()
    if not settings.is_production:
        # Production schemas are managed by Alembic
        await init_db(engine)
    init_services(build_services(settings, get_session_factory(), engine=engine))
    logger.info("Gatherly API started")

    yield

    logger.info("Shutting down Gatherly API")
    await shutdown_services()
    await engine.dispose()


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="Gatherly API",
    description="""
# Gatherly API

Events, calendars and invitations.

Events and calendars are written to the primary store first and mirrored
to the secondary store on a best-effort basis. Reads fall back to the
secondary store, then to seed data, only when a store is unavailable.

## Error Handling

- **401** - Missing X-User-ID header
- **404** - Resource not found
- **409** - Slug taken, or invitation status change not allowed
- **422** - Validation error
- **503** - Primary store unavailable
    """,
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(event_router)
app.include_router(calendar_router)
app.include_router(invite_router)
app.include_router(webhook_router)


# =============================================================================
# Exception Handlers
# =============================================================================


HTTP_ERROR_TYPES = {
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
}


def _error(status_code: int, error_type: str, message: str, retryable: bool = False, **details):
    return JSONResponse(
        status_code=status_code,
        content={
            "error_type": error_type,
            "message": message,
            "details": details or None,
            "retryable": retryable,
        },
    )


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request, exc: InvalidTransitionError):
    return _error(
        409,
        "conflict",
        exc.message,
        from_status=exc.from_status,
        to_status=exc.to_status,
    )


@app.exception_handler(ValidationFailedError)
async def validation_failed_handler(request, exc: ValidationFailedError):
    return _error(422, "validation_error", exc.message, field=exc.field)


@app.exception_handler(SlugTakenError)
async def slug_taken_handler(request, exc: SlugTakenError):
    return _error(409, "conflict", exc.message, field="slug", slug=exc.slug)


@app.exception_handler(CalendarNotFoundError)
async def calendar_not_found_handler(request, exc: CalendarNotFoundError):
    return _error(404, "not_found", exc.message)


@app.exception_handler(PrimaryStoreError)
async def primary_store_handler(request, exc: PrimaryStoreError):
    logger.error(f"Primary store failure: {exc.message}")
    return _error(503, "store_unavailable", exc.message, retryable=True)


@app.exception_handler(StoreError)
async def store_error_handler(request, exc: StoreError):
    logger.error(f"Store failure: {exc.message}")
    retryable = isinstance(exc, StoreUnavailableError) or exc.retryable
    return _error(503, "store_unavailable", exc.message, retryable=retryable)


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_type": HTTP_ERROR_TYPES.get(exc.status_code, "http_error"),
            "message": exc.detail,
            "retryable": exc.status_code >= 500,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error_type": "internal_error",
            "message": "An unexpected error occurred",
            "retryable": True,
        },
    )


# =============================================================================
# Health & Status Endpoints
# =============================================================================


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    tags=["System"],
)
async def health_check() -> HealthResponse:
    """
    Check API health status.

    Unhealthy when the relational store is unreachable; degraded when no
    document store is configured.
    """
    services = get_services()
    database_connected = (
        await check_connection(services.engine) if services.engine is not None else False
    )

    if not database_connected:
        status = "unhealthy"
    elif services.document_store == "none":
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(
        status=status,
        version=API_VERSION,
        primary_store=services.primary_store,
        document_store=services.document_store,
        database_connected=database_connected,
    )


# =============================================================================
# Run with Uvicorn
# =============================================================================


def run_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Run the API server with Uvicorn."""
    import uvicorn

    uvicorn.run(
        "src.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    settings = get_settings()
    run_server(host=settings.api_host, port=settings.api_port, reload=settings.api_reload)
