"""Pydantic request/response schemas for API endpoints."""

from app.schemas.auth import (
    AuthUser,
    SendCodeRequest,
    SessionResponse,
    VerifyRequest,
    VerifyResponse,
)
from app.schemas.user import (
    ItemsResponse,
    ProtectedResponse,
    UpdateStatsRequest,
    UserProfile,
    UserResponse,
)

__all__ = [
    # Auth
    "AuthUser",
    "SendCodeRequest",
    "SessionResponse",
    "VerifyRequest",
    "VerifyResponse",
    # User
    "ItemsResponse",
    "ProtectedResponse",
    "UpdateStatsRequest",
    "UserProfile",
    "UserResponse",
]
