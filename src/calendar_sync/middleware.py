"""Custom middleware for FastAPI."""

import time
import uuid
from typing import Callable

from fastapi import Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from calendar_sync.config import get_settings
from calendar_sync.utils.logging import get_logger, log_request, set_request_id

logger = get_logger("middleware")

# Responses on these paths carry OAuth codes, tokens or account ids
NO_STORE_PREFIXES = ("/nylas/callback", "/calendar/", "/functions/")


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assigns the request ID, times the request and logs it."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        set_request_id(request_id)
        request.state.request_id = request_id

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        log_request(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            client_ip=request.client.host if request.client else None,
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = f"{duration_ms:.2f}ms"
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds security headers to responses."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        # The callback URL holds the authorization code and state
        response.headers["Referrer-Policy"] = "no-referrer"
        # The callback page is static HTML with no scripts
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; style-src 'self' 'unsafe-inline'; frame-ancestors 'none';"
        )
        if request.url.path.startswith(NO_STORE_PREFIXES):
            response.headers["Cache-Control"] = "no-store"
        if get_settings().is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


def setup_cors_middleware(app: ASGIApp) -> None:
    """Browser calls to the functions send the session bearer and, for webhooks, the signature header."""
    settings = get_settings()
    origins = settings.cors.origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        # Browsers reject credentialed requests against a wildcard origin
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=settings.cors.allow_headers,
        max_age=settings.cors.max_age,
    )
    logger.info(f"CORS configured: origins={origins}, headers={settings.cors.allow_headers}")


def setup_middleware(app: ASGIApp) -> None:
    """Set up all middleware for the FastAPI application.

    Middleware executes in reverse order of registration, so security headers
    wrap the request context, which wraps CORS preflight handling.
    """
    setup_cors_middleware(app)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    logger.info("Middleware configured: CORS, RequestContext, SecurityHeaders")
