"""Phone sign-in and session endpoints.

Endpoints:
- POST /auth/send-code: text a verification code to a phone number
- POST /auth/verify: exchange the code for a bearer token
- POST /auth/logout: delete the presented session
- GET /auth/session: validate the token, rotating it past half-life
- DELETE /auth/account: soft delete the account, sign out everywhere
"""

from fastapi import APIRouter, Request

from app.api.deps import BearerToken, CurrentSession, DbSession, RateLimitStore
from app.core.config import settings
from app.core.rate_limiting import client_ip, limiter
from app.core.responses import SuccessResponse
from app.schemas.auth import (
    AuthUser,
    SendCodeRequest,
    SessionResponse,
    VerifyRequest,
    VerifyResponse,
)
from app.services import phone_auth_service

router = APIRouter()


# ===================================================================
# POST /auth/send-code
# ===================================================================


@router.post("/send-code")
async def send_code(
    request: Request,
    body: SendCodeRequest,
    db: DbSession,
    store: RateLimitStore,
) -> SuccessResponse:
    """Send a verification code by SMS.

    Throttled per IP, per phone number, and by a per-phone cooldown.
    """
    await phone_auth_service.send_code(
        db,
        phone_number=body.phone_number,
        client_ip=client_ip(request),
        rate_limit_store=store,
    )
    return SuccessResponse(message="Verification code sent successfully")


# ===================================================================
# POST /auth/verify
# ===================================================================


@router.post("/verify")
@limiter.limit(lambda: settings.rate_limit_verify)
async def verify(
    request: Request,  # noqa: ARG001
    body: VerifyRequest,
    db: DbSession,
) -> VerifyResponse:
    """Verify a code and issue a session token.

    Creates the user on first sign-in and reactivates a deleted one.
    """
    login = await phone_auth_service.verify_code(
        db,
        phone_number=body.phone_number,
        code=body.code,
    )
    return VerifyResponse(
        token=login.token,
        user=AuthUser.model_validate(login.user),
    )


# ===================================================================
# POST /auth/logout
# ===================================================================


@router.post("/logout")
async def logout(token: BearerToken, db: DbSession) -> SuccessResponse:
    """Delete the presented session. Succeeds even if it no longer exists."""
    await phone_auth_service.logout(db, token=token)
    return SuccessResponse(message="Logged out successfully")


# ===================================================================
# GET /auth/session
# ===================================================================


@router.get("/session")
async def check_session(token: BearerToken, db: DbSession) -> SessionResponse:
    """Validate the session.

    Once half the session's lifetime has passed the token is replaced
    and the new one returned; the presented token stops working.
    """
    result = await phone_auth_service.check_session(db, token=token)
    return SessionResponse(
        refreshed=result.refreshed,
        token=result.token,
        user=AuthUser.model_validate(result.user),
    )


# ===================================================================
# DELETE /auth/account
# ===================================================================


@router.delete("/account")
async def delete_account(auth: CurrentSession, db: DbSession) -> SuccessResponse:
    """Soft delete the caller's account and all of their sessions.

    Verifying the same phone number again reactivates the account.
    """
    await phone_auth_service.delete_account(db, user_id=auth.user.id)
    return SuccessResponse(message="Account deleted successfully")
