"""Repository for VerificationCode operations.

One row per phone number. Writes use PostgreSQL's native upsert and a
single conditional UPDATE for consumption, so concurrent requests for
the same number cannot interleave a read and a write.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.verification_code import VerificationCode


class VerificationCodeRepository:
    """Stateless repository for VerificationCode table operations.

    All methods are static. No instance state.
    """

    @staticmethod
    async def upsert(
        db: AsyncSession,
        *,
        phone_number: str,
        code: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> None:
        """Store a new code for a phone number, replacing any previous one.

        Resets used to false so a previously consumed row becomes usable
        again with the new code.

        Args:
            db: Async database session.
            phone_number: Canonical phone number.
            code: Verification code.
            expires_at: Code expiry timestamp.
            created_at: Issue timestamp.
        """
        values = {
            "code": code,
            "expires_at": expires_at,
            "used": False,
            "created_at": created_at,
        }
        stmt = insert(VerificationCode).values(phone_number=phone_number, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[VerificationCode.phone_number],
            set_=values,
        )
        await db.execute(stmt)

    @staticmethod
    async def consume(
        db: AsyncSession,
        *,
        phone_number: str,
        code: str,
        now: datetime,
    ) -> uuid.UUID | None:
        """Mark a matching, unexpired, unused code as used.

        Args:
            db: Async database session.
            phone_number: Canonical phone number.
            code: Code presented by the caller.
            now: Reference time for the expiry check.

        Returns:
            ID of the consumed row, or None if no code matched.
        """
        stmt = (
            update(VerificationCode)
            .where(
                VerificationCode.phone_number == phone_number,
                VerificationCode.code == code,
                VerificationCode.expires_at > now,
                VerificationCode.used.is_(False),
            )
            .values(used=True)
            .returning(VerificationCode.id)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete_expired(db: AsyncSession, *, now: datetime) -> int:
        """Delete all expired codes (periodic cleanup).

        Args:
            db: Async database session.
            now: Reference time.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(VerificationCode).where(VerificationCode.expires_at < now)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
