"""Create users and pending_verifications tables.

Revision ID: 001_users_pending_verifications
Revises:
Create Date: 2026-10-19

- users: verified accounts only (no email_verified flag).
- pending_verifications: one row per in-flight registration, keyed by
  normalized email, holding the active passcode and account snapshot.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB, UUID

revision: str = "001_users_pending_verifications"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # =========================================================================
    # users
    # =========================================================================
    op.create_table(
        "users",
        sa.Column(
            "id",
            UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            primary_key=True,
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("username", sa.String(20), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column(
            "role", sa.String(20), server_default="user", nullable=False
        ),
        sa.Column("avatar", sa.Text(), nullable=True),
        sa.Column(
            "token_invalidated_before", sa.DateTime(timezone=True), nullable=True
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.UniqueConstraint("email", name="users_email_key"),
        sa.UniqueConstraint("username", name="users_username_key"),
        sa.CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )

    # =========================================================================
    # pending_verifications
    # =========================================================================
    op.create_table(
        "pending_verifications",
        sa.Column("email", sa.String(255), primary_key=True),
        # Plain passcode: short-lived, never logged or returned
        sa.Column("code", sa.String(12), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_sent_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "resend_count", sa.Integer(), server_default="0", nullable=False
        ),
        sa.Column("attempts", sa.Integer(), server_default="0", nullable=False),
        sa.Column("pending_user", JSONB(), nullable=False),
        sa.CheckConstraint(
            "expires_at > created_at",
            name="ck_pending_verifications_expiry_after_creation",
        ),
        sa.CheckConstraint(
            "attempts >= 0 AND resend_count >= 0",
            name="ck_pending_verifications_counters_non_negative",
        ),
    )
    # Supports the periodic purge of expired records
    op.create_index(
        "ix_pending_verifications_expires_at",
        "pending_verifications",
        ["expires_at"],
    )


def downgrade() -> None:
    op.drop_index(
        "ix_pending_verifications_expires_at", table_name="pending_verifications"
    )
    op.drop_table("pending_verifications")
    op.drop_table("users")
