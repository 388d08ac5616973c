"""SQLAlchemy ORM models for the Dumplin backend.

All models are exported from this module for convenient imports:
    from app.models import User, Session, VerificationCode

Models:
- user.py: User (soft delete via deleted_at)
- session.py: Session (bearer tokens, FK to users)
- verification_code.py: VerificationCode (one row per phone number)
"""

from app.models.base import Base, SoftDeleteMixin, TimestampMixin
from app.models.session import Session
from app.models.user import User
from app.models.verification_code import VerificationCode

__all__ = [
    # Base classes
    "Base",
    "SoftDeleteMixin",
    "TimestampMixin",
    # Auth
    "Session",
    "User",
    "VerificationCode",
]
