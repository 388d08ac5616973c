"""User profile and sample resource endpoints.

Endpoints:
- GET /api/user: current user's profile
- PATCH /api/user/stats: store the client's usage counter
- GET /api/items: public listing, personalized when signed in
- GET /api/protected: auth check for clients
"""

import logging

from fastapi import APIRouter

from app.api.deps import CurrentUser, DbSession, OptionalUser
from app.core.responses import SuccessResponse
from app.schemas.user import (
    ItemsResponse,
    ProtectedResponse,
    UpdateStatsRequest,
    UserProfile,
    UserResponse,
)
from app.services import phone_auth_service

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/user")
async def get_user(user: CurrentUser) -> UserResponse:
    """Return the current user's profile."""
    return UserResponse(user=UserProfile.model_validate(user))


@router.patch("/user/stats")
async def update_stats(
    body: UpdateStatsRequest,
    user: CurrentUser,
    db: DbSession,
) -> SuccessResponse:
    """Overwrite the user's dump_count with the client's value."""
    await phone_auth_service.update_dump_count(
        db, user_id=user.id, dump_count=body.dump_count
    )
    return SuccessResponse()


@router.get("/items")
async def list_items(user: OptionalUser) -> ItemsResponse:
    """List items. Anonymous callers are allowed."""
    if user is not None:
        logger.debug("Listing items for user %s", user.id)
    return ItemsResponse(data=[])


@router.get("/protected")
async def protected(user: CurrentUser) -> ProtectedResponse:
    return ProtectedResponse(
        message="You have access to this protected resource",
        user=UserProfile.model_validate(user),
    )
