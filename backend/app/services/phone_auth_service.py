"""Phone authentication service.

Ties together phone normalization, send-code throttling, verification
codes, users, sessions, and SMS dispatch.

Flows:
- send_code: validate phone, throttle, store code, text it
- verify_code: consume code, find/create/reactivate user, issue session
- authenticate: bearer token -> user (no refresh)
- check_session: bearer token -> user, rotating the token past half-life
- logout: delete one session
- delete_account: soft delete user, delete all their sessions

Transactions: each flow runs on the request-scoped session. Flows that
must persist before returning commit explicitly. send_code commits the
code before dispatching the SMS, so a failed send leaves it usable.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import redis.asyncio as aioredis
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.auth import (
    generate_session_token,
    generate_verification_code,
    session_age_fraction,
    session_expires_at,
    should_refresh_session,
)
from app.core.config import settings
from app.core.errors import InvalidCodeError, UnauthorizedError, ValidationError
from app.core.phone import format_phone_number, is_valid_phone_number, mask_phone_number
from app.core.sms import send_verification_sms
from app.core.throttling import enforce_send_code_limits
from app.models.session import Session
from app.models.user import User
from app.repositories.session_repository import SessionRepository
from app.repositories.user_repository import UserRepository
from app.repositories.verification_code_repository import VerificationCodeRepository

logger = logging.getLogger(__name__)

# Verification code lifetime
CODE_TTL = timedelta(minutes=10)

_INVALID_TOKEN_MSG = "Invalid or expired token"


@dataclass(frozen=True)
class VerifiedLogin:
    """Result of a successful verify.

    Attributes:
        token: New session bearer token.
        user: The signed-in user (created or reactivated as needed).
    """

    token: str
    user: User


@dataclass(frozen=True)
class AuthenticatedSession:
    """A valid session and its user."""

    session: Session
    user: User


@dataclass(frozen=True)
class SessionCheckResult:
    """Result of a session check.

    Attributes:
        user: Session owner.
        refreshed: True if the token was rotated.
        token: Replacement token when refreshed, None otherwise.
    """

    user: User
    refreshed: bool
    token: str | None = None


def is_review_number(phone_number: str) -> bool:
    """Check whether a canonical phone number is the configured review number."""
    if not settings.review_bypass_enabled:
        return False
    return phone_number == format_phone_number(settings.review_phone_number)


async def send_code(
    db: AsyncSession,
    *,
    phone_number: str | None,
    client_ip: str,
    rate_limit_store: aioredis.Redis | None,
) -> None:
    """Issue a verification code and text it to the caller.

    Args:
        db: Async database session.
        phone_number: Phone number as entered by the user.
        client_ip: Caller's address, for per-IP throttling.
        rate_limit_store: Redis client, or None to skip throttling.

    Raises:
        ValidationError: If the phone number is missing or malformed.
        RateLimitedError: If a throttling check fails.
        SmsDeliveryError: If the SMS could not be sent. The code is
            already stored and remains valid.
    """
    if not phone_number:
        raise ValidationError("Phone number is required")
    if not is_valid_phone_number(phone_number):
        raise ValidationError("Invalid phone number format")

    phone = format_phone_number(phone_number)

    await enforce_send_code_limits(
        rate_limit_store,
        client_ip=client_ip,
        phone_number=phone,
    )

    review = is_review_number(phone)
    code = settings.review_code if review else generate_verification_code()

    now = datetime.now(UTC)
    await VerificationCodeRepository.upsert(
        db,
        phone_number=phone,
        code=code,
        expires_at=now + CODE_TTL,
        created_at=now,
    )
    await db.commit()

    if review:
        logger.info("Review number %s: SMS skipped", mask_phone_number(phone))
        return

    await send_verification_sms(to=phone, code=code)


async def verify_code(
    db: AsyncSession,
    *,
    phone_number: str | None,
    code: str | None,
) -> VerifiedLogin:
    """Exchange a verification code for a session.

    Code consumption, user creation/reactivation, and session insert
    commit together.

    Args:
        db: Async database session.
        phone_number: Phone number as entered by the user.
        code: Code from the SMS.

    Returns:
        VerifiedLogin with the new token and user.

    Raises:
        ValidationError: If phone number or code is missing.
        InvalidCodeError: If no matching unexpired, unused code exists.
    """
    if not phone_number or not code:
        raise ValidationError("Phone number and code are required")

    phone = format_phone_number(phone_number)
    now = datetime.now(UTC)

    review = is_review_number(phone) and code == settings.review_code
    if not review:
        consumed_id = await VerificationCodeRepository.consume(
            db, phone_number=phone, code=code, now=now
        )
        if consumed_id is None:
            raise InvalidCodeError()

    user = await UserRepository.get_by_phone(db, phone)
    if user is None:
        user = await UserRepository.create(db, phone_number=phone)
        logger.info("Created user %s", user.id)
    elif user.is_deleted:
        reactivated = await UserRepository.reactivate(db, user.id)
        if reactivated is not None:
            user = reactivated
        logger.info("Reactivated user %s", user.id)

    token = generate_session_token()
    await SessionRepository.create(
        db,
        user_id=user.id,
        token=token,
        expires_at=session_expires_at(now),
        created_at=now,
    )
    await db.commit()

    return VerifiedLogin(token=token, user=user)


async def authenticate(db: AsyncSession, *, token: str) -> AuthenticatedSession:
    """Resolve a bearer token to its session and user.

    Args:
        db: Async database session.
        token: Bearer token.

    Returns:
        AuthenticatedSession for the token.

    Raises:
        UnauthorizedError: If the token is unknown or expired.
    """
    found = await SessionRepository.get_valid_with_user(
        db, token=token, now=datetime.now(UTC)
    )
    if found is None:
        raise UnauthorizedError(_INVALID_TOKEN_MSG)
    session, user = found
    return AuthenticatedSession(session=session, user=user)


async def check_session(db: AsyncSession, *, token: str) -> SessionCheckResult:
    """Validate a session and rotate it once half its lifetime has passed.

    After a rotation the presented token is gone; callers must switch to
    the returned one.

    Args:
        db: Async database session.
        token: Bearer token.

    Returns:
        SessionCheckResult, with the replacement token if refreshed.

    Raises:
        UnauthorizedError: If the token is unknown or expired.
    """
    now = datetime.now(UTC)
    found = await SessionRepository.get_valid_with_user(db, token=token, now=now)
    if found is None:
        raise UnauthorizedError(_INVALID_TOKEN_MSG)

    session, user = found
    if not should_refresh_session(session.created_at, session.expires_at, now):
        return SessionCheckResult(user=user, refreshed=False)

    used = session_age_fraction(session.created_at, session.expires_at, now)
    new_token = generate_session_token()
    await SessionRepository.replace(
        db,
        old_token=token,
        user_id=user.id,
        new_token=new_token,
        expires_at=session_expires_at(now),
        created_at=now,
    )
    await db.commit()

    logger.info("Session refreshed for user %s (%.1f%% used)", user.id, used * 100)
    return SessionCheckResult(user=user, refreshed=True, token=new_token)


async def logout(db: AsyncSession, *, token: str) -> None:
    """Delete the session for a token. Unknown tokens are not an error."""
    await SessionRepository.delete_by_token(db, token=token)
    await db.commit()


async def delete_account(db: AsyncSession, *, user_id: uuid.UUID) -> None:
    """Soft delete a user and sign them out everywhere.

    Args:
        db: Async database session.
        user_id: User to delete.
    """
    await UserRepository.soft_delete(db, user_id, deleted_at=datetime.now(UTC))
    removed = await SessionRepository.delete_all_for_user(db, user_id=user_id)
    await db.commit()
    logger.info("Deleted account %s (%d sessions removed)", user_id, removed)


async def update_dump_count(
    db: AsyncSession, *, user_id: uuid.UUID, dump_count: int
) -> None:
    """Store the client-reported usage counter.

    Raises:
        ValidationError: If dump_count is negative.
        UnauthorizedError: If the user no longer exists.
    """
    if dump_count < 0:
        raise ValidationError("dump_count must be a non-negative integer")

    user = await UserRepository.update(db, user_id, dump_count=dump_count)
    if user is None:
        raise UnauthorizedError()
    await db.commit()
