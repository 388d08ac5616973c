"""Request/response schemas for the /api user endpoints."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserProfile(BaseModel):
    """Full user profile, including the usage counter."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    phone_number: str
    dump_count: int
    created_at: datetime


class UserResponse(BaseModel):
    """Response for GET /api/user."""

    success: bool = True
    user: UserProfile


class UpdateStatsRequest(BaseModel):
    """Request body for PATCH /api/user/stats."""

    model_config = ConfigDict(extra="forbid", strict=True)

    dump_count: int = Field(ge=0)


class ItemsResponse(BaseModel):
    """Response for GET /api/items."""

    success: bool = True
    data: list[dict] = Field(default_factory=list)


class ProtectedResponse(BaseModel):
    """Response for GET /api/protected."""

    success: bool = True
    message: str
    user: UserProfile
