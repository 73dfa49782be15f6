"""User model - permanent accounts.

A row exists only for verified email addresses. Unverified registrations
live in pending_verifications until promoted, so there is no separate
email_verified flag.
"""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from inkwell.models.base import Base, TimestampMixin

_DEFAULT_UUID = text("gen_random_uuid()")

DEFAULT_ROLE = "user"


class User(Base, TimestampMixin):
    """Registered blog account.

    Attributes:
        id: UUID primary key.
        email: Unique, lowercase email address.
        name: Display name.
        username: Unique handle (3-20 chars of [a-z0-9_]). NULL for
            accounts created before handles existed.
        password_hash: bcrypt hash.
        role: ``"user"`` or ``"admin"``.
        avatar: Avatar image URL.
        token_invalidated_before: JWTs issued before this are rejected.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "role IN ('user', 'admin')",
            name="ck_users_role",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        server_default=_DEFAULT_UUID,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    username: Mapped[str | None] = mapped_column(
        String(20),
        unique=True,
        nullable=True,
    )
    password_hash: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        server_default=DEFAULT_ROLE,
        default=DEFAULT_ROLE,
    )
    avatar: Mapped[str | None] = mapped_column(
        Text(),
        nullable=True,
    )
    token_invalidated_before: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )
