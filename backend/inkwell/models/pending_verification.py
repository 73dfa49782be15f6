"""PendingVerification model - in-flight email registrations.

One row per normalized email. Holds the active one-time passcode, its
expiry and throttle bookkeeping, and the snapshot of the account that will
be created once the email is verified.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from inkwell.models.base import Base


class PendingVerification(Base):
    """Pending email verification for a not-yet-created user.

    Email is the primary key: registration precedes the existence of a user
    id, and the key enforces at most one pending record per address.

    Attributes:
        email: Normalized (trimmed, lowercase) email address.
        code: Active numeric passcode. Never logged or returned by the API.
        created_at: Issuance time of the active code.
        expires_at: Time after which the code is rejected.
        last_sent_at: Time of the latest issue or resend (throttling).
        resend_count: Successful resends since the last fresh issue.
        attempts: Failed verify attempts since the last fresh issue.
        pending_user: Account snapshot (name, email, password_hash, role,
            avatar, username).
    """

    __tablename__ = "pending_verifications"
    __table_args__ = (
        CheckConstraint(
            "expires_at > created_at",
            name="ck_pending_verifications_expiry_after_creation",
        ),
        CheckConstraint(
            "attempts >= 0 AND resend_count >= 0",
            name="ck_pending_verifications_counters_non_negative",
        ),
        Index("ix_pending_verifications_expires_at", "expires_at"),
    )

    email: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
    )
    code: Mapped[str] = mapped_column(
        String(12),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    last_sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    resend_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default="0",
        default=0,
    )
    attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default="0",
        default=0,
    )
    pending_user: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
    )
