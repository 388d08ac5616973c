"""Response envelope models.

Every response carries a top-level ``success`` flag. Errors use
``{"success": false, "error": "...", "code": "..."}``.

WHY RESPONSE ENVELOPES:
- Mobile clients branch on one field instead of status codes
- Error messages are always a plain string at a predictable key
"""

from pydantic import BaseModel


class SuccessResponse(BaseModel):
    """Minimal success envelope.

    Usage:
        @router.post("/logout")
        async def logout(...) -> SuccessResponse:
            return SuccessResponse(message="Logged out successfully")
    """

    success: bool = True
    message: str | None = None


class ErrorResponse(BaseModel):
    """Standard error response envelope.

    Usage in exception handlers:
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=exc.message, code=exc.code).model_dump(),
        )

    Attributes:
        success: Always False.
        error: Human-readable error message.
        code: Machine-readable error code (e.g., "RATE_LIMITED").
        details: Optional list of field-level errors (for validation).
    """

    success: bool = False
    error: str
    code: str
    details: list[dict] | None = None
