"""Authentication helpers for codes, session tokens, and refresh timing.

Shared utilities used by the phone auth service and auth dependencies.

Pipeline:
- generate_verification_code: 5-digit SMS code
- generate_session_token / session_expires_at: session issuance
- session_age_fraction / should_refresh_session: sliding refresh
- extract_bearer_token: Authorization header parsing
"""

import secrets
from datetime import UTC, datetime, timedelta

from app.core.config import settings

# SMS code range, inclusive on both ends
_CODE_MIN = 10000
_CODE_MAX = 99999

# 32 random bytes, hex encoded (64 chars, 256 bits of entropy)
_SESSION_TOKEN_BYTES = 32

# Sessions are reissued once this fraction of their lifetime has elapsed
SESSION_REFRESH_THRESHOLD = 0.5

_BEARER_PREFIX = "Bearer "


def generate_verification_code() -> str:
    """Generate a uniformly random 5-digit numeric code.

    Returns:
        Code string in the range 10000-99999.
    """
    return str(_CODE_MIN + secrets.randbelow(_CODE_MAX - _CODE_MIN + 1))


def generate_session_token() -> str:
    """Generate an opaque bearer token.

    Returns:
        64-character lowercase hex string.
    """
    return secrets.token_hex(_SESSION_TOKEN_BYTES)


def session_expires_at(now: datetime | None = None) -> datetime:
    """Compute a fresh session expiry.

    Args:
        now: Issue time. Defaults to the current UTC time.

    Returns:
        Issue time plus SESSION_EXPIRY_DAYS.
    """
    issued = now or datetime.now(UTC)
    return issued + timedelta(days=settings.session_expiry_days)


def session_age_fraction(
    created_at: datetime,
    expires_at: datetime,
    now: datetime,
) -> float:
    """Fraction of a session's total lifespan that has elapsed.

    Args:
        created_at: Session creation time.
        expires_at: Session expiry time.
        now: Reference time.

    Returns:
        0.0 at creation, 1.0 at expiry. A zero-length lifespan counts
        as fully used.
    """
    lifespan = (expires_at - created_at).total_seconds()
    if lifespan <= 0:
        return 1.0
    return (now - created_at).total_seconds() / lifespan


def should_refresh_session(
    created_at: datetime,
    expires_at: datetime,
    now: datetime,
) -> bool:
    """Check whether a session is due for sliding refresh."""
    fraction = session_age_fraction(created_at, expires_at, now)
    return fraction >= SESSION_REFRESH_THRESHOLD


def extract_bearer_token(authorization: str | None) -> str | None:
    """Pull the token out of an ``Authorization: Bearer <token>`` header.

    Args:
        authorization: Raw header value, or None if absent.

    Returns:
        The token, or None if the header is missing, uses another scheme,
        or carries an empty token.
    """
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None
