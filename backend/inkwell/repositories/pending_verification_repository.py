"""Repository for PendingVerification operations.

Every mutation is a single SQL statement keyed by email, so concurrent
requests for the same address cannot interleave into a record that pairs
a new code with an old expiry.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.models.pending_verification import PendingVerification


class PendingVerificationRepository:
    """Stateless repository for PendingVerification table operations.

    All methods are static with no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    Callers pass emails already normalized.
    """

    @staticmethod
    async def upsert_issue(
        db: AsyncSession,
        *,
        email: str,
        code: str,
        expires_at: datetime,
        now: datetime,
        pending_user: dict[str, Any],
    ) -> PendingVerification:
        """Replace any pending verification for the email with a fresh one.

        Counters reset to zero and both created_at and last_sent_at are set
        to ``now``. Implemented as INSERT ... ON CONFLICT DO UPDATE so the
        whole record is swapped atomically.

        Args:
            db: Async database session.
            email: Normalized email address (primary key).
            code: Newly generated passcode.
            expires_at: Expiry of the new code.
            now: Issuance timestamp.
            pending_user: Account snapshot to promote after verification.

        Returns:
            The stored PendingVerification.
        """
        values = {
            "code": code,
            "created_at": now,
            "expires_at": expires_at,
            "last_sent_at": now,
            "resend_count": 0,
            "attempts": 0,
            "pending_user": pending_user,
        }
        stmt = (
            insert(PendingVerification)
            .values(email=email, **values)
            .on_conflict_do_update(
                index_elements=[PendingVerification.email],
                set_=values,
            )
            .returning(PendingVerification)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one()

    @staticmethod
    async def get(db: AsyncSession, email: str) -> PendingVerification | None:
        """Fetch the pending verification for an email.

        Args:
            db: Async database session.
            email: Normalized email address.

        Returns:
            PendingVerification if found, None otherwise.
        """
        stmt = (
            select(PendingVerification)
            .where(PendingVerification.email == email)
            .execution_options(populate_existing=True)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def increment_attempts(db: AsyncSession, email: str) -> int | None:
        """Add one failed verify attempt. No-op if the record is absent.

        Args:
            db: Async database session.
            email: Normalized email address.

        Returns:
            The incremented attempts value, or None if no record matched.
        """
        stmt = (
            update(PendingVerification)
            .where(PendingVerification.email == email)
            .values(attempts=PendingVerification.attempts + 1)
            .returning(PendingVerification.attempts)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def record_resend(
        db: AsyncSession,
        *,
        email: str,
        code: str,
        expires_at: datetime,
        now: datetime,
    ) -> PendingVerification | None:
        """Swap in a resent code and bump resend_count.

        attempts is left untouched.

        Args:
            db: Async database session.
            email: Normalized email address.
            code: Newly generated passcode.
            expires_at: Expiry of the new code.
            now: Send timestamp (becomes created_at and last_sent_at).

        Returns:
            Updated PendingVerification, or None if the record no longer
            exists.
        """
        stmt = (
            update(PendingVerification)
            .where(PendingVerification.email == email)
            .values(
                code=code,
                created_at=now,
                expires_at=expires_at,
                last_sent_at=now,
                resend_count=PendingVerification.resend_count + 1,
            )
            .returning(PendingVerification)
            .execution_options(
                synchronize_session=False,
                populate_existing=True,
            )
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete(db: AsyncSession, email: str) -> None:
        """Delete the pending verification for an email.

        Args:
            db: Async database session.
            email: Normalized email address.
        """
        stmt = delete(PendingVerification).where(PendingVerification.email == email)
        await db.execute(stmt)

    @staticmethod
    async def delete_expired(db: AsyncSession, *, now: datetime) -> int:
        """Delete every pending verification whose code has expired.

        Args:
            db: Async database session.
            now: Reference time; records with expires_at before it go.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(PendingVerification).where(PendingVerification.expires_at < now)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
