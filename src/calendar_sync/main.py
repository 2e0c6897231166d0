"""FastAPI application entry point.

This module creates and configures the FastAPI application instance with:
- Middleware (CORS, request context, security headers)
- Exception handlers (APIException, HTTPException, ValidationError, general)
- Backend functions (/functions/v1/*) and portal routes
- Health check endpoints (/health, /ready) and /debug/config outside production
- Startup/shutdown lifecycle management (database)
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from calendar_sync import __version__
from calendar_sync.config import get_settings
from calendar_sync.database import check_connection, close_db, init_db
from calendar_sync.exceptions import APIException, NotFoundError
from calendar_sync.middleware import setup_middleware
from calendar_sync.utils.logging import get_logger, get_request_id, log_error, setup_logging

# Set up logging first
setup_logging()
logger = get_logger("main")

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise the database on startup and dispose of the engine on shutdown."""
    logger.info("Starting calendar sync service...")
    try:
        await init_db()

        missing = settings.missing_backend_config()
        if missing:
            logger.warning(f"Backend functions are missing configuration: {missing}")
        if not settings.nylas.webhook_secret:
            logger.warning("NYLAS_WEBHOOK_SECRET is not set - webhook notifications will be rejected")

        logger.info("Calendar sync service started successfully")
        yield
    except Exception as e:
        logger.error(f"Failed to start calendar sync service: {e}", exc_info=True)
        raise
    finally:
        logger.info("Shutting down calendar sync service...")
        await close_db()
        logger.info("Calendar sync service shut down successfully")


app = FastAPI(
    title="Calendar Sync",
    description=(
        "Calendar OAuth connect flow, Nylas token exchange, calendar listing "
        "and webhook-driven event mirroring."
    ),
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    debug=settings.debug,
    lifespan=lifespan,
    openapi_tags=[
        {"name": "nylas", "description": "Token exchange and calendar listing"},
        {"name": "webhooks", "description": "Nylas webhook receiver"},
        {"name": "portal", "description": "Browser-facing connect flow and sync status"},
    ],
)

setup_middleware(app)

from calendar_sync.api.v1.router import router as functions_router  # noqa: E402
from calendar_sync.portal.routes import router as portal_router  # noqa: E402

app.include_router(functions_router)
app.include_router(portal_router)


def _error_body(message: str, code: str, status_code: int, details: dict) -> dict:
    return {
        "error": {
            "message": message,
            "code": code,
            "status_code": status_code,
            "details": details,
            "request_id": get_request_id(),
        }
    }


# Exception handlers
@app.exception_handler(APIException)
async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    """Handle custom API exceptions."""
    context = {
        "method": request.method,
        "path": request.url.path,
        "status_code": exc.status_code,
        "error_code": exc.code,
    }
    if exc.status_code >= 500:
        log_error(exc, context=context)
    else:
        logger.warning(f"{exc.code}: {exc.message}", extra={"extra_fields": context})
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(request_id=get_request_id()),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Handle HTTP exceptions (404, 405, etc.)."""
    logger.warning(
        f"{exc.status_code}: {request.method} {request.url.path}",
        extra={
            "extra_fields": {
                "method": request.method,
                "path": request.url.path,
                "status_code": exc.status_code,
            }
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(str(exc.detail), "HTTP_ERROR", exc.status_code, {}),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error.get("loc", [])),
            "message": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]

    logger.warning(
        f"Validation error: {request.method} {request.url.path}",
        extra={
            "extra_fields": {
                "method": request.method,
                "path": request.url.path,
                "validation_errors": errors,
            }
        },
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body("Validation failed", "VALIDATION_ERROR", 422, {"validation_errors": errors}),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    log_error(
        exc,
        context={
            "method": request.method,
            "path": request.url.path,
            "unhandled": True,
        },
    )

    # Don't expose internal error details in production
    if settings.is_production:
        message = "An internal server error occurred"
        details: dict = {}
    else:
        message = str(exc)
        details = {"exception_type": type(exc).__name__}

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(message, "INTERNAL_SERVER_ERROR", 500, details),
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    logger.debug("Health check requested")
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "environment": settings.environment.value,
        "version": __version__,
    }


@app.get("/ready")
async def readiness_check():
    """Readiness check endpoint with database connectivity check."""
    logger.debug("Readiness check requested")
    db_connected = await check_connection()

    if not db_connected:
        logger.warning("Readiness check failed: database not connected")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "app_name": settings.app_name,
                "environment": settings.environment.value,
                "database": "disconnected",
            },
        )

    return {
        "status": "ready",
        "app_name": settings.app_name,
        "environment": settings.environment.value,
        "database": "connected",
    }


@app.get("/debug/config")
async def debug_config():
    """Which configuration values are present and the endpoints derived from them (non-production only)."""
    current = get_settings()
    if current.is_production:
        raise NotFoundError(resource="Endpoint")

    return {
        "environment": current.environment.value,
        "values": {
            "NYLAS_CLIENT_ID": bool(current.nylas.client_id),
            "NYLAS_CLIENT_SECRET": bool(current.nylas.client_secret),
            "NYLAS_CALLBACK_URI": bool(current.nylas.callback_uri),
            "NYLAS_WEBHOOK_SECRET": bool(current.nylas.webhook_secret),
            "SUPABASE_URL": bool(current.supabase.url),
            "SUPABASE_SERVICE_ROLE_KEY": bool(current.supabase.service_role_key),
            "SUPABASE_JWT_SECRET": bool(current.supabase.jwt_secret),
            "PORTAL_BACKEND_URL": bool(current.portal.backend_url),
        },
        "nylas_client_id": current.nylas.client_id,
        "nylas_callback_uri": current.nylas.callback_uri,
        "backend_url": current.backend_base_url or None,
        "exchange_endpoint": current.exchange_endpoint,
        "calendars_endpoint": current.calendars_endpoint,
        "missing_backend_config": current.missing_backend_config(),
    }
