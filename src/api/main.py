"""
FastAPI application for Calendar Link.

This is the main entry point for the HTTP API, providing:
- Google account linking endpoints (status, connect, callback, disconnect)
- Calendar export endpoint
- Health endpoint
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from src.api.dependencies import build_services
from src.api.middleware import RequestLoggingMiddleware
from src.api.models import HealthResponse
from src.api.routes import router
from src.config import get_settings
from src.database import check_connection, init_db
from src.exceptions import (
    CalendarLinkError,
    InvalidStateError,
    NotLinkedError,
    OAuthDeniedError,
    ProviderAuthError,
    StorageConflictError,
)

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"

# Most specific first: OAuthDeniedError is also a ProviderAuthError
_ERROR_STATUS = [
    (OAuthDeniedError, 400, "oauth_denied"),
    (InvalidStateError, 400, "invalid_state"),
    (ProviderAuthError, 401, "provider_auth"),
    (NotLinkedError, 409, "not_linked"),
    (StorageConflictError, 409, "storage_conflict"),
]


def configure_logging(level: str = "INFO") -> None:
    """Set the root log format and level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def error_status(exc: CalendarLinkError) -> tuple[int, str]:
    """HTTP status and error type for a core error."""
    for error_class, status_code, error_type in _ERROR_STATUS:
        if isinstance(exc, error_class):
            return status_code, error_type
    return 500, "internal_error"


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting Calendar Link API")
    owns_services = getattr(app.state, "services", None) is None
    if owns_services:
        settings = get_settings()
        settings.validate_production_config()
        services = build_services(settings)
        if settings.is_development:
            await init_db(services.engine)
        app.state.services = services
    logger.info("Calendar Link API started")

    yield

    # Shutdown
    logger.info("Shutting down Calendar Link API")
    if owns_services:
        await app.state.services.close()
        app.state.services = None


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="Calendar Link API",
    description="""
# Calendar Link API

Links a local user to their Google account and exports course meetings,
assignments and exams to their Google Calendar.

## Session

Every endpoint except `/health` reads the caller from headers set by the
upstream identity system:
- `X-Session-Cookie` - opaque session cookie (required)
- `X-User-ID` - local username (required)
- `X-User-Email` - user email (optional)

## Error Handling

Errors are returned as `{error_type, message, retryable}`.

- **400** - Invalid or replayed OAuth state, or access denied at Google
- **401** - Missing session headers, or Google rejected the token exchange/refresh
- **409** - No linked Google account, or username conflict
- **422** - Validation error

Export never fails because of individual items; those are counted in
`failed` with one message each in `errors`.
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
app.include_router(router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(CalendarLinkError)
async def calendar_link_exception_handler(request: Request, exc: CalendarLinkError):
    """Map core errors to HTTP responses."""
    status_code, error_type = error_status(exc)
    if status_code >= 500:
        logger.error(f"Unmapped error: {exc}", exc_info=exc)
    else:
        logger.warning(f"{error_type}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={
            "error_type": error_type,
            "message": exc.message,
            "retryable": exc.retryable,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error_type": "http_error",
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
async def health_check(request: Request):
    """
    Check API health status.

    Returns:
        Health status including database connectivity
    """
    services = getattr(request.app.state, "services", None)
    database_connected = False
    if services is not None and services.engine is not None:
        database_connected = await check_connection(services.engine)

    return HealthResponse(
        status="healthy" if database_connected else "unhealthy",
        version=API_VERSION,
        database_connected=database_connected,
    )


# =============================================================================
# Run with Uvicorn
# =============================================================================


def run_server(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """Run the API server with Uvicorn."""
    import uvicorn

    configure_logging(get_settings().log_level)
    uvicorn.run(
        "src.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


if __name__ == "__main__":
    settings = get_settings()
    run_server(host=settings.api_host, port=settings.api_port, reload=settings.api_reload)
