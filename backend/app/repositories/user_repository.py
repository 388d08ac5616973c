"""Repository for User CRUD operations.

Provides database access for the users table. Users are keyed by
canonical phone number; account deletion is a soft delete.
"""

import uuid
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.user import User

# Fields that may be updated via UserRepository.update().
# Security: Never add 'id', 'phone_number', 'created_at', or 'updated_at'.
# - id: primary key, immutable
# - phone_number: identity, only set by the verify flow
# - created_at/updated_at: server-managed timestamps
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "deleted_at",
        "dump_count",
    }
)


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static. No instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_phone(db: AsyncSession, phone_number: str) -> User | None:
        """Fetch a user by canonical phone number.

        Soft-deleted users are returned too; the verify flow reactivates them.

        Args:
            db: Async database session.
            phone_number: Canonical phone number.

        Returns:
            User if found, None otherwise.
        """
        stmt = select(User).where(User.phone_number == phone_number)
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(db: AsyncSession, *, phone_number: str) -> User:
        """Create a new user.

        Args:
            db: Async database session.
            phone_number: Canonical phone number.

        Returns:
            Created User with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If the phone number already exists.
        """
        user = User(phone_number=phone_number)
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def update(
        db: AsyncSession,
        user_id: uuid.UUID,
        **kwargs: int | datetime | None,
    ) -> User | None:
        """Update user fields.

        Only fields in _UPDATABLE_FIELDS are allowed. Unknown field names
        raise ValueError.

        Args:
            db: Async database session.
            user_id: UUID of the user to update.
            **kwargs: Field names and values to update.

        Returns:
            Updated User if found, None if user does not exist.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        user = await db.get(User, user_id)
        if user is None:
            return None

        for field, value in kwargs.items():
            setattr(user, field, value)

        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def soft_delete(
        db: AsyncSession, user_id: uuid.UUID, *, deleted_at: datetime
    ) -> User | None:
        """Mark a user as deleted.

        Args:
            db: Async database session.
            user_id: UUID of the user.
            deleted_at: Deletion timestamp.

        Returns:
            Updated User if found, None if user does not exist.
        """
        return await UserRepository.update(db, user_id, deleted_at=deleted_at)

    @staticmethod
    async def reactivate(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Clear a user's soft delete marker.

        Args:
            db: Async database session.
            user_id: UUID of the user.

        Returns:
            Updated User if found, None if user does not exist.
        """
        return await UserRepository.update(db, user_id, deleted_at=None)
