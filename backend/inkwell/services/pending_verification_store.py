"""Pending-verification store: interface and adapters.

The OTP workflow talks to a PendingVerificationStore and never to the ORM
directly. Two adapters exist:

- DatabasePendingVerificationStore: PostgreSQL via
  PendingVerificationRepository, scoped to one request session.
- InMemoryPendingVerificationStore: process-local dict for local-first
  single-instance runs and tests.

Records cross the interface as frozen PendingVerificationRecord snapshots.
"""

import dataclasses
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import TypedDict

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.config import settings
from inkwell.models.pending_verification import PendingVerification
from inkwell.repositories.pending_verification_repository import (
    PendingVerificationRepository,
)


class PendingUser(TypedDict, total=False):
    """Snapshot of the account to create once the email is verified."""

    name: str
    email: str
    password_hash: str
    role: str
    avatar: str | None
    username: str | None


@dataclass(frozen=True)
class PendingVerificationRecord:
    """Immutable view of one pending verification.

    code and pending_user are excluded from repr so the passcode and the
    password hash cannot leak through logging of the record.
    """

    email: str
    code: str = field(repr=False)
    created_at: datetime
    expires_at: datetime
    last_sent_at: datetime
    resend_count: int
    attempts: int
    pending_user: PendingUser = field(repr=False)

    @classmethod
    def from_model(cls, row: PendingVerification) -> "PendingVerificationRecord":
        """Build a record from an ORM row."""
        return cls(
            email=row.email,
            code=row.code,
            created_at=row.created_at,
            expires_at=row.expires_at,
            last_sent_at=row.last_sent_at,
            resend_count=row.resend_count,
            attempts=row.attempts,
            pending_user=PendingUser(**row.pending_user),  # type: ignore[typeddict-item]
        )

    def is_expired(self, now: datetime) -> bool:
        """Check whether the code is past its expiry at ``now``."""
        return now > self.expires_at


class PendingVerificationStore(ABC):
    """Keyed storage for pending verifications.

    All methods take a normalized email. Each mutation must be atomic per
    key.
    """

    @abstractmethod
    async def upsert_issue(
        self,
        email: str,
        *,
        code: str,
        expires_at: datetime,
        now: datetime,
        pending_user: PendingUser,
    ) -> PendingVerificationRecord:
        """Replace any record for the email with a fresh one (counters at 0)."""

    @abstractmethod
    async def find(self, email: str) -> PendingVerificationRecord | None:
        """Return the record for the email, or None."""

    @abstractmethod
    async def record_failed_attempt(self, email: str) -> int | None:
        """Increment attempts and return the new count.

        Returns None (and changes nothing) if the record is absent.
        """

    @abstractmethod
    async def record_resend(
        self,
        email: str,
        *,
        code: str,
        expires_at: datetime,
        now: datetime,
    ) -> PendingVerificationRecord | None:
        """Swap in a resent code, bump resend_count, keep attempts.

        Returns None if the record vanished.
        """

    @abstractmethod
    async def delete(self, email: str) -> None:
        """Remove the record for the email."""

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Remove every expired record and return how many went."""

    @abstractmethod
    async def commit(self) -> None:
        """Make preceding mutations durable.

        The workflow calls this before side effects (sending a code) and
        before raising errors whose store changes must survive the
        request rolling back.
        """


class DatabasePendingVerificationStore(PendingVerificationStore):
    """PostgreSQL-backed store bound to a single AsyncSession.

    Mutations join the request session's transaction; commit() commits it,
    which also covers any user row written in the same session.
    """

    def __init__(self, db: AsyncSession) -> None:
        self._db = db

    async def upsert_issue(
        self,
        email: str,
        *,
        code: str,
        expires_at: datetime,
        now: datetime,
        pending_user: PendingUser,
    ) -> PendingVerificationRecord:
        row = await PendingVerificationRepository.upsert_issue(
            self._db,
            email=email,
            code=code,
            expires_at=expires_at,
            now=now,
            pending_user=dict(pending_user),
        )
        return PendingVerificationRecord.from_model(row)

    async def find(self, email: str) -> PendingVerificationRecord | None:
        row = await PendingVerificationRepository.get(self._db, email)
        return PendingVerificationRecord.from_model(row) if row else None

    async def record_failed_attempt(self, email: str) -> int | None:
        return await PendingVerificationRepository.increment_attempts(self._db, email)

    async def record_resend(
        self,
        email: str,
        *,
        code: str,
        expires_at: datetime,
        now: datetime,
    ) -> PendingVerificationRecord | None:
        row = await PendingVerificationRepository.record_resend(
            self._db,
            email=email,
            code=code,
            expires_at=expires_at,
            now=now,
        )
        return PendingVerificationRecord.from_model(row) if row else None

    async def delete(self, email: str) -> None:
        await PendingVerificationRepository.delete(self._db, email)

    async def delete_expired(self, now: datetime) -> int:
        return await PendingVerificationRepository.delete_expired(self._db, now=now)

    async def commit(self) -> None:
        await self._db.commit()


class InMemoryPendingVerificationStore(PendingVerificationStore):
    """Process-local store.

    Note: Safe for async/await usage (no await between read and write on
    the single-threaded event loop) but not for multi-threaded access or
    multi-instance deployments.
    """

    def __init__(self) -> None:
        self._records: dict[str, PendingVerificationRecord] = {}

    async def upsert_issue(
        self,
        email: str,
        *,
        code: str,
        expires_at: datetime,
        now: datetime,
        pending_user: PendingUser,
    ) -> PendingVerificationRecord:
        record = PendingVerificationRecord(
            email=email,
            code=code,
            created_at=now,
            expires_at=expires_at,
            last_sent_at=now,
            resend_count=0,
            attempts=0,
            pending_user=PendingUser(**pending_user),  # type: ignore[typeddict-item]
        )
        self._records[email] = record
        return record

    async def find(self, email: str) -> PendingVerificationRecord | None:
        return self._records.get(email)

    async def record_failed_attempt(self, email: str) -> int | None:
        record = self._records.get(email)
        if record is None:
            return None
        self._records[email] = dataclasses.replace(
            record, attempts=record.attempts + 1
        )
        return record.attempts + 1

    async def record_resend(
        self,
        email: str,
        *,
        code: str,
        expires_at: datetime,
        now: datetime,
    ) -> PendingVerificationRecord | None:
        record = self._records.get(email)
        if record is None:
            return None
        updated = dataclasses.replace(
            record,
            code=code,
            created_at=now,
            expires_at=expires_at,
            last_sent_at=now,
            resend_count=record.resend_count + 1,
        )
        self._records[email] = updated
        return updated

    async def delete(self, email: str) -> None:
        self._records.pop(email, None)

    async def delete_expired(self, now: datetime) -> int:
        expired = [email for email, rec in self._records.items() if rec.is_expired(now)]
        for email in expired:
            del self._records[email]
        return len(expired)

    async def commit(self) -> None:
        return None

    def clear(self) -> None:
        """Drop all records (for testing)."""
        self._records.clear()


# Singleton for the "memory" backend
_memory_store: InMemoryPendingVerificationStore | None = None


def get_pending_verification_store(db: AsyncSession) -> PendingVerificationStore:
    """Return the store selected by settings.otp_store_backend.

    Args:
        db: Request session, used by the database backend.

    Returns:
        PendingVerificationStore for this request.
    """
    global _memory_store

    if settings.otp_store_backend == "memory":
        if _memory_store is None:
            _memory_store = InMemoryPendingVerificationStore()
        return _memory_store
    return DatabasePendingVerificationStore(db)


def reset_memory_store() -> None:
    """Reset the in-memory store singleton (for testing)."""
    global _memory_store
    if _memory_store is not None:
        _memory_store.clear()
    _memory_store = None
