"""Repository for Session operations.

Bearer token sessions. Lookups join the owning user so callers get
both in one round trip.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.session import Session
from app.models.user import User


class SessionRepository:
    """Stateless repository for Session table operations.

    All methods are static. No instance state.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        token: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> Session:
        """Store a new session.

        Args:
            db: Async database session.
            user_id: Owning user.
            token: Bearer token.
            expires_at: Absolute expiry.
            created_at: Issue time.

        Returns:
            Created Session.
        """
        session = Session(
            user_id=user_id,
            token=token,
            expires_at=expires_at,
            created_at=created_at,
        )
        db.add(session)
        await db.flush()
        return session

    @staticmethod
    async def get_valid_with_user(
        db: AsyncSession,
        *,
        token: str,
        now: datetime,
    ) -> tuple[Session, User] | None:
        """Look up an unexpired session and its user.

        The user's soft delete state is not checked; only account
        deletion (which removes sessions) ends access.

        Args:
            db: Async database session.
            token: Bearer token.
            now: Reference time for the expiry check.

        Returns:
            (session, user) if the token is valid, None otherwise.
        """
        stmt = (
            select(Session, User)
            .join(User, Session.user_id == User.id)
            .where(Session.token == token, Session.expires_at > now)
            .limit(1)
        )
        result = await db.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return row[0], row[1]

    @staticmethod
    async def delete_by_token(db: AsyncSession, *, token: str) -> int:
        """Delete a session by token.

        Args:
            db: Async database session.
            token: Bearer token.

        Returns:
            Number of deleted rows (0 if the token did not exist).
        """
        stmt = delete(Session).where(Session.token == token)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def delete_all_for_user(db: AsyncSession, *, user_id: uuid.UUID) -> int:
        """Delete every session belonging to a user (global sign-out).

        Args:
            db: Async database session.
            user_id: Owning user.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(Session).where(Session.user_id == user_id)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def replace(
        db: AsyncSession,
        *,
        old_token: str,
        user_id: uuid.UUID,
        new_token: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> Session:
        """Rotate a session: delete the old token and insert a new one.

        Both statements run in the caller's transaction, so the swap is
        committed (or rolled back) as a unit.

        Args:
            db: Async database session.
            old_token: Token being retired.
            user_id: Owning user.
            new_token: Replacement token.
            expires_at: Expiry for the replacement.
            created_at: Issue time for the replacement.

        Returns:
            The new Session.
        """
        await SessionRepository.delete_by_token(db, token=old_token)
        return await SessionRepository.create(
            db,
            user_id=user_id,
            token=new_token,
            expires_at=expires_at,
            created_at=created_at,
        )

    @staticmethod
    async def delete_expired(db: AsyncSession, *, now: datetime) -> int:
        """Delete all expired sessions (periodic cleanup).

        Args:
            db: Async database session.
            now: Reference time.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(Session).where(Session.expires_at <= now)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
