import socket
import time
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import settings
from app.models.base import Base

# Use separate test database
_BASE_URL, _DB_NAME = settings.async_database_url.rsplit("/", 1)
TEST_DATABASE_URL = f"{_BASE_URL}/{_DB_NAME}_test"

# Canonical test phone numbers
TEST_PHONE = "+15551234567"
OTHER_PHONE = "+15559876543"

# Review pair used by tests that enable the bypass
TEST_REVIEW_PHONE = "+15550000000"
TEST_REVIEW_CODE = "24680"


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on port 5432, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("127.0.0.1", 5432))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available.

    Called by fixtures that require database connection.
    """
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


class FakeRedis:
    """In-memory stand-in for the Redis commands used by throttling.

    Supports INCR, EXPIRE, GET, and SET with ex. Expiry is honored
    against time.time(), so tests that patch time see keys expire.
    """

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.expiry: dict[str, float] = {}

    def _purge(self, key: str) -> None:
        deadline = self.expiry.get(key)
        if deadline is not None and time.time() >= deadline:
            self.values.pop(key, None)
            self.expiry.pop(key, None)

    async def incr(self, key: str) -> int:
        self._purge(key)
        value = int(self.values.get(key, "0")) + 1
        self.values[key] = str(value)
        return value

    async def expire(self, key: str, seconds: int) -> bool:
        if key not in self.values:
            return False
        self.expiry[key] = time.time() + seconds
        return True

    async def get(self, key: str) -> str | None:
        self._purge(key)
        return self.values.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self.values[key] = value
        if ex is not None:
            self.expiry[key] = time.time() + ex
        else:
            self.expiry.pop(key, None)
        return True

    async def ttl(self, key: str) -> int:
        if key not in self.expiry:
            return -1
        return int(self.expiry[key] - time.time())


@pytest.fixture
def fake_redis() -> FakeRedis:
    """Empty in-memory throttling store."""
    return FakeRedis()


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine.

    Skips test if PostgreSQL is not available (e.g., Docker not running).
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


# =============================================================================
# Data Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession):
    """Create an active user with TEST_PHONE.

    Yields:
        User model instance.
    """
    from app.models import User

    user = User(phone_number=TEST_PHONE)
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    yield user


async def create_session_row(
    db: AsyncSession,
    user_id,
    *,
    token: str,
    age: timedelta = timedelta(0),
    lifetime: timedelta = timedelta(days=30),
):
    """Insert a session whose created_at lies ``age`` in the past.

    Args:
        db: Database session.
        user_id: Owning user.
        token: Bearer token to store.
        age: How long ago the session was issued.
        lifetime: Total lifetime from issue to expiry.

    Returns:
        The committed Session.
    """
    from app.models import Session

    created_at = datetime.now(UTC) - age
    session = Session(
        user_id=user_id,
        token=token,
        created_at=created_at,
        expires_at=created_at + lifetime,
    )
    db.add(session)
    await db.commit()
    return session


# =============================================================================
# API Test Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def client(
    db_engine, fake_redis: FakeRedis
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test database and a fake Redis.

    Sets up:
    - Test database connection via dependency override
    - In-memory throttling store via dependency override
    - httpx.AsyncClient with ASGI transport
    """
    from app.core.database import get_db
    from app.core.throttling import get_rate_limit_store
    from app.main import app

    test_session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with test_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_rate_limit_store() -> AsyncGenerator[FakeRedis, None]:
        yield fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_limit_store] = override_get_rate_limit_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def auth_headers(token: str) -> dict[str, str]:
    """Authorization header for a bearer token."""
    return {"Authorization": f"Bearer {token}"}


# =============================================================================
# Autouse Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def disable_rate_limiting() -> Iterator[None]:
    """Disable the slowapi decorator limits between tests.

    Tests that exercise the limiter re-enable it explicitly.
    """
    from app.core.rate_limiting import limiter

    original = limiter.enabled
    limiter.enabled = False
    limiter.reset()
    yield
    limiter.enabled = original


@pytest.fixture
def review_pair() -> Iterator[tuple[str, str]]:
    """Enable the review bypass for the duration of a test.

    Yields:
        (review phone number, review code).
    """
    original = (settings.review_phone_number, settings.review_code)
    settings.review_phone_number = TEST_REVIEW_PHONE
    settings.review_code = TEST_REVIEW_CODE
    yield TEST_REVIEW_PHONE, TEST_REVIEW_CODE
    settings.review_phone_number, settings.review_code = original


@pytest.fixture
def sms_sent() -> Iterator[list[dict]]:
    """Capture outgoing verification SMS instead of calling Twilio.

    Yields:
        List of {"to", "code"} dicts, one per send.
    """
    from unittest.mock import patch

    sent: list[dict] = []

    async def _capture(*, to: str, code: str) -> str:
        sent.append({"to": to, "code": code})
        return "SM_test"

    with patch(
        "app.services.phone_auth_service.send_verification_sms",
        side_effect=_capture,
    ):
        yield sent
