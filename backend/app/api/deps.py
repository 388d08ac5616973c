"""Shared dependencies for API endpoints.

Bearer-token authentication and request-scoped store handles.

require_auth only looks the session up; it never rotates the token.
Rotation happens exclusively in GET /auth/session so clients have one
place to pick up a replacement token.
"""

from typing import Annotated

import redis.asyncio as aioredis
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import extract_bearer_token
from app.core.database import get_db
from app.core.errors import UnauthorizedError
from app.core.throttling import get_rate_limit_store
from app.models.user import User
from app.services.phone_auth_service import AuthenticatedSession, authenticate

DbSession = Annotated[AsyncSession, Depends(get_db)]
RateLimitStore = Annotated[aioredis.Redis | None, Depends(get_rate_limit_store)]


def get_bearer_token(request: Request) -> str:
    """Read the bearer token from the Authorization header.

    Args:
        request: HTTP request (injected by FastAPI).

    Returns:
        The raw token.

    Raises:
        UnauthorizedError: 401 if the header is missing or not a bearer token.
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise UnauthorizedError("No token provided")
    return token


BearerToken = Annotated[str, Depends(get_bearer_token)]


async def require_session(token: BearerToken, db: DbSession) -> AuthenticatedSession:
    """Resolve the bearer token to a valid session.

    Args:
        token: Bearer token (injected).
        db: Database session (injected).

    Returns:
        The session and its user.

    Raises:
        UnauthorizedError: 401 if the token is missing, unknown, or expired.
    """
    return await authenticate(db, token=token)


async def require_auth(
    auth: Annotated[AuthenticatedSession, Depends(require_session)],
) -> User:
    """Get the authenticated user.

    Raises:
        UnauthorizedError: 401 for any auth failure.
    """
    return auth.user


async def optional_auth(request: Request, db: DbSession) -> User | None:
    """Get the user for a valid bearer token, or None.

    Never fails: a missing, malformed, or expired token resolves to an
    anonymous caller.
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        return None
    try:
        auth = await authenticate(db, token=token)
    except UnauthorizedError:
        return None
    return auth.user


# Reusable type aliases for dependency injection
CurrentSession = Annotated[AuthenticatedSession, Depends(require_session)]
CurrentUser = Annotated[User, Depends(require_auth)]
OptionalUser = Annotated[User | None, Depends(optional_auth)]
