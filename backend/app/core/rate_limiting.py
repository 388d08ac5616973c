"""Decorator rate limiting using slowapi.

Security: Caps brute-force attempts against /auth/verify. A 5-digit code
has 90,000 possibilities; per-IP limits keep guessing impractical within
the code's 10-minute lifetime.

Send-code throttling (per IP, per phone, cooldown) lives in
app.core.throttling because it needs Redis-backed shared state.

Usage in routers:
    from app.core.rate_limiting import limiter

    @router.post("/verify")
    @limiter.limit(lambda: settings.rate_limit_verify)
    async def verify(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from starlette.responses import JSONResponse

from app.core.config import settings
from app.core.responses import ErrorResponse


def client_ip(request: Request) -> str:
    """Get the caller's address for rate limit keying.

    Args:
        request: The incoming request.

    Returns:
        Remote address, or "unknown" when the transport provides none.
    """
    return request.client.host if request.client else "unknown"


# Global limiter instance
# Configured with in-memory storage (suitable for single-instance deployment)
# For multi-instance, configure Redis storage via RATELIMIT_STORAGE_URL
limiter = Limiter(
    key_func=client_ip,
    enabled=settings.rate_limit_enabled,
)


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Handle rate limit exceeded errors.

    Security: Returns 429 Too Many Requests with standard error envelope.

    Args:
        request: The incoming request.
        exc: The rate limit exception.

    Returns:
        JSONResponse with 429 status and retry-after header.
    """
    # Parse retry-after from exception detail (e.g., "10 per 1 minute")
    # Fallback to 60 seconds if parsing fails
    try:
        retry_after = str(exc.detail.split()[-1])
        # Validate it looks like a time value
        int(retry_after.rstrip("s"))  # "60" or "60s" -> 60
    except (ValueError, AttributeError, IndexError):
        retry_after = "60"

    return JSONResponse(
        status_code=429,
        content=ErrorResponse(
            error=f"Rate limit exceeded: {exc.detail}",
            code="RATE_LIMITED",
        ).model_dump(),
        headers={"Retry-After": retry_after},
    )
