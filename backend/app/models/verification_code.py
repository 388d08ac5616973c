"""Verification code model - SMS one-time codes.

One row per phone number. Sending a new code overwrites the row
(upsert on the unique phone_number), so only the latest code counts.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class VerificationCode(Base):
    """Outstanding SMS verification code for a phone number.

    Attributes:
        id: UUID primary key.
        phone_number: Canonical phone number. Unique.
        code: 5-digit numeric code.
        expires_at: Code expiry timestamp.
        used: True once the code has been exchanged for a session.
        created_at: When the current code was issued.
    """

    __tablename__ = "verification_codes"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=text("gen_random_uuid()"),
    )
    phone_number: Mapped[str] = mapped_column(
        String(32),
        unique=True,
        nullable=False,
    )
    code: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    used: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
