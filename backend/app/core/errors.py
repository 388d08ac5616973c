"""API error classes.

WHY CUSTOM ERROR CLASSES:
- Consistent error response format across all endpoints
- Easy to map to HTTP status codes in exception handlers
- Type-safe error handling in services/repositories
"""


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "NOT_FOUND").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for request body validation errors, malformed phone numbers, etc.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class InvalidCodeError(APIError):
    """Verification code did not match an outstanding code (400).

    Covers wrong, expired, and already-used codes with one message so
    callers cannot tell which case applied.
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_CODE",
            message="Invalid or expired verification code",
            status_code=400,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no valid bearer token is provided.
    """

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class RateLimitedError(APIError):
    """Too many requests (429).

    Raised by send-code throttling. The exception handler turns
    retry_after into a Retry-After header.

    Args:
        message: Human-readable retry hint.
        retry_after: Seconds until the caller may try again.
    """

    def __init__(self, message: str, retry_after: int) -> None:
        self.retry_after = retry_after
        super().__init__(
            code="RATE_LIMITED",
            message=message,
            status_code=429,
            details=[{"retry_after": retry_after}],
        )


class SmsDeliveryError(APIError):
    """SMS provider rejected or failed the send (500).

    The provider's response is logged server-side, never returned.
    """

    def __init__(self) -> None:
        super().__init__(
            code="SMS_DELIVERY_FAILED",
            message="Failed to send verification code",
            status_code=500,
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = "An unexpected error occurred") -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
