"""User model - authentication foundation.

Users are keyed by canonical phone number and created on first
successful verification. Account deletion is a soft delete.
"""

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Integer, String, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, SoftDeleteMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.session import Session

_DEFAULT_UUID = text("gen_random_uuid()")


class User(Base, TimestampMixin, SoftDeleteMixin):
    """User account for phone authentication.

    Attributes:
        id: UUID primary key.
        phone_number: Unique canonical phone number (e.g., "+15551234567").
        dump_count: Client-reported usage counter. Defaults to 0.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
        deleted_at: Soft delete timestamp (from SoftDeleteMixin).
    """

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    phone_number: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
    )
    dump_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default=text("0"),
        default=0,
    )

    # Relationships
    sessions: Mapped[list["Session"]] = relationship(
        "Session",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
