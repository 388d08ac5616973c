"""FastAPI application entry point.

This module creates and configures the FastAPI application, including:
- Exception handlers rendering the error envelope
- Auth and user router mounting
- Service and database health endpoints
"""

import logging
import time
from datetime import UTC, datetime

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.api.routes.router import router as api_router
from app.core.config import settings
from app.core.database import check_database_connection
from app.core.errors import APIError, InternalError, RateLimitedError
from app.core.rate_limiting import limiter, rate_limit_exceeded_handler
from app.core.responses import ErrorResponse

logger = structlog.get_logger()

APP_VERSION = "1.0.0"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Middleware to add security headers to all responses.

    Headers added:
    - X-Frame-Options: Prevents clickjacking attacks
    - X-Content-Type-Options: Prevents MIME sniffing
    - Referrer-Policy: Controls referrer information leakage
    - Cache-Control: No caching of auth and user responses
    - Content-Security-Policy: Restricts resource loading (API returns no HTML)
    - Strict-Transport-Security: Forces HTTPS (production only)
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Add security headers to response."""
        response = await call_next(request)

        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        # Tokens and profile data must not be cached
        if request.url.path.startswith(("/api/", "/auth/")):
            response.headers["Cache-Control"] = "no-store, max-age=0"

        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none'"
        )

        # HSTS only in production (assumes HTTPS via reverse proxy)
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )

        return response


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    """Render an APIError as the error envelope.

    Throttling errors also carry a Retry-After header.

    Args:
        request: The incoming request.
        exc: The APIError that was raised.

    Returns:
        JSONResponse with error envelope and appropriate status code.
    """
    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after)}

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.message,
            code=exc.code,
            details=exc.details,
        ).model_dump(),
        headers=headers,
    )


def validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors from FastAPI.

    Args:
        request: The incoming request.
        exc: The RequestValidationError from Pydantic.

    Returns:
        JSONResponse with VALIDATION_ERROR code and field-level details.
    """
    return JSONResponse(
        status_code=400,
        content=ErrorResponse(
            error="Request validation failed",
            code="VALIDATION_ERROR",
            details=[
                {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
                for e in exc.errors()
            ],
        ).model_dump(),
    )


def http_error_handler(
    _request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render routing errors (404, 405) as the error envelope."""
    if exc.status_code == 404:
        error, code = "Not Found", "NOT_FOUND"
    else:
        error, code = str(exc.detail), "HTTP_ERROR"

    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(error=error, code=code).model_dump(),
        headers=getattr(exc, "headers", None),
    )


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions.

    Never expose internal error details to clients. Log for debugging.

    Args:
        request: The incoming request.
        exc: The unhandled exception.

    Returns:
        JSONResponse with generic error message (500).
    """
    logger.exception("Unhandled exception", exc_info=exc, path=str(request.url.path))

    return api_error_handler(request, InternalError("Internal server error"))


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="Dumplin Backend API",
        version=APP_VERSION,
        description="Phone number sign-in for the Dumplin app",
    )

    # Middleware order: Starlette uses LIFO, so the LAST added runs FIRST.
    # CORS must run first to handle preflight requests, so add it last.
    # Bearer tokens travel in a header, not cookies, so credentials stay off
    # and a wildcard origin is allowed.
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Authorization"],
    )

    # Order matters: specific handlers first, then catch-all
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.state.limiter = limiter

    app.include_router(api_router)

    @app.get("/")
    def root() -> dict:
        """Service banner."""
        return {
            "status": "ok",
            "message": "Dumplin Backend API",
            "version": APP_VERSION,
        }

    @app.get("/health")
    def health_check() -> dict:
        """Health check endpoint for monitoring.

        Returns:
            {"status": "healthy"} if service is running.
        """
        return {"status": "healthy"}

    @app.get("/health/db")
    async def database_health() -> JSONResponse:
        """Database reachability check.

        Returns:
            200 when a trivial query succeeds, 503 otherwise.
        """
        started = time.perf_counter()
        healthy = await check_database_connection()
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "database": {
                    "status": "healthy" if healthy else "unhealthy",
                    "response_time_ms": elapsed_ms,
                    "timestamp": datetime.now(UTC).isoformat(),
                }
            },
        )

    return app


# Create the application instance
# Used by uvicorn: uvicorn app.main:app
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
