"""Request/response schemas for the /auth endpoints.

Request fields are optional at the schema level so that a missing phone
number or code yields the same 400 message whether the key is absent or
empty.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Requests
# =============================================================================


class SendCodeRequest(BaseModel):
    """Request body for POST /auth/send-code.

    A phone number sent as a JSON number is coerced to a string.
    """

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)

    phone_number: str | None = Field(default=None, max_length=32)


class VerifyRequest(BaseModel):
    """Request body for POST /auth/verify.

    Mobile clients sometimes send the phone number or code as a JSON
    number, so numbers are coerced to strings. Leading zeros cannot
    occur in issued codes.
    """

    model_config = ConfigDict(extra="forbid", coerce_numbers_to_str=True)

    phone_number: str | None = Field(default=None, max_length=32)
    code: str | None = Field(default=None, max_length=10)


# =============================================================================
# Responses
# =============================================================================


class AuthUser(BaseModel):
    """User fields returned by the auth endpoints.

    Attributes:
        id: User UUID.
        phone_number: Canonical phone number.
        created_at: Account creation time.
    """

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    phone_number: str
    created_at: datetime


class VerifyResponse(BaseModel):
    """Response for POST /auth/verify."""

    success: bool = True
    token: str
    user: AuthUser


class SessionResponse(BaseModel):
    """Response for GET /auth/session.

    Attributes:
        valid: Always True (invalid sessions get a 401).
        refreshed: True if the token was rotated.
        token: Replacement token when refreshed; the old one is gone.
        user: Session owner.
    """

    success: bool = True
    valid: bool = True
    refreshed: bool
    token: str | None
    user: AuthUser
