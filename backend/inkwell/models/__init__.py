"""SQLAlchemy ORM models for Inkwell.

All models are exported from this module for convenient imports:
    from inkwell.models import User, PendingVerification

Models:
- user.py: User (permanent accounts)
- pending_verification.py: PendingVerification (keyed by email, no FKs)
"""

from inkwell.models.base import Base, TimestampMixin
from inkwell.models.pending_verification import PendingVerification
from inkwell.models.user import User

__all__ = [
    "Base",
    "TimestampMixin",
    "PendingVerification",
    "User",
]
