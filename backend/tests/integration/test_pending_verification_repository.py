"""PostgreSQL tests for the pending-verification and user repositories.

Exercises the single-statement upserts and counter updates against a real
database. Skipped when PostgreSQL is not reachable.
"""

import asyncio
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inkwell.repositories.pending_verification_repository import (
    PendingVerificationRepository,
)
from inkwell.repositories.user_repository import UserRepository
from inkwell.services.account_promotion import promote_pending_user

_EMAIL = "db.reader@example.com"
_NOW = datetime(2026, 6, 1, 10, 0, tzinfo=UTC)
_EXPIRES = _NOW + timedelta(minutes=5)


def _snapshot(**overrides: object) -> dict:
    base = {
        "name": "Db Reader",
        "email": _EMAIL,
        "password_hash": "$2b$12$hash",
        "role": "user",
    }
    base.update(overrides)
    return base


async def _issue(db: AsyncSession, code: str = "123456", **snapshot: object):
    return await PendingVerificationRepository.upsert_issue(
        db,
        email=_EMAIL,
        code=code,
        expires_at=_EXPIRES,
        now=_NOW,
        pending_user=_snapshot(**snapshot),
    )


# =============================================================================
# PendingVerificationRepository
# =============================================================================


class TestUpsertIssue:
    async def test_insert(self, db_session):
        row = await _issue(db_session)

        assert row.email == _EMAIL
        assert row.code == "123456"
        assert row.attempts == 0
        assert row.resend_count == 0
        assert row.pending_user["name"] == "Db Reader"

    async def test_conflict_replaces_whole_record(self, db_session):
        await _issue(db_session, code="111111")
        await PendingVerificationRepository.increment_attempts(db_session, _EMAIL)

        row = await _issue(db_session, code="222222", name="Second")

        assert row.code == "222222"
        assert row.attempts == 0
        assert row.pending_user["name"] == "Second"


class TestCounters:
    async def test_increment_attempts(self, db_session):
        await _issue(db_session)
        increment = PendingVerificationRepository.increment_attempts
        first = await increment(db_session, _EMAIL)
        second = await increment(db_session, _EMAIL)

        assert (first, second) == (1, 2)

        row = await PendingVerificationRepository.get(db_session, _EMAIL)
        assert row is not None
        assert row.attempts == 2

    async def test_increment_missing_is_noop(self, db_session):
        await PendingVerificationRepository.increment_attempts(db_session, _EMAIL)
        assert await PendingVerificationRepository.get(db_session, _EMAIL) is None

    async def test_record_resend(self, db_session):
        await _issue(db_session)
        await PendingVerificationRepository.increment_attempts(db_session, _EMAIL)
        later = _NOW + timedelta(minutes=6)

        row = await PendingVerificationRepository.record_resend(
            db_session,
            email=_EMAIL,
            code="654321",
            expires_at=later + timedelta(minutes=5),
            now=later,
        )

        assert row is not None
        assert row.code == "654321"
        assert row.resend_count == 1
        assert row.attempts == 1
        assert row.last_sent_at == later

    async def test_record_resend_missing(self, db_session):
        row = await PendingVerificationRepository.record_resend(
            db_session, email=_EMAIL, code="1", expires_at=_EXPIRES, now=_NOW
        )
        assert row is None

    async def test_concurrent_failed_attempts_all_count(self, db_engine):
        factory = async_sessionmaker(db_engine, expire_on_commit=False)
        async with factory() as session:
            await _issue(session)
            await session.commit()

        async def fail_once() -> None:
            async with factory() as session:
                await PendingVerificationRepository.increment_attempts(session, _EMAIL)
                await session.commit()

        await asyncio.gather(*(fail_once() for _ in range(5)))

        async with factory() as session:
            row = await PendingVerificationRepository.get(session, _EMAIL)
            assert row is not None
            assert row.attempts == 5


class TestDelete:
    async def test_delete(self, db_session):
        await _issue(db_session)
        await PendingVerificationRepository.delete(db_session, _EMAIL)
        assert await PendingVerificationRepository.get(db_session, _EMAIL) is None

    async def test_delete_expired(self, db_session):
        await _issue(db_session)
        await PendingVerificationRepository.upsert_issue(
            db_session,
            email="fresh@example.com",
            code="000001",
            expires_at=_EXPIRES + timedelta(hours=1),
            now=_NOW,
            pending_user=_snapshot(email="fresh@example.com"),
        )

        deleted = await PendingVerificationRepository.delete_expired(
            db_session, now=_EXPIRES + timedelta(seconds=1)
        )

        assert deleted == 1
        assert await PendingVerificationRepository.get(db_session, _EMAIL) is None


# =============================================================================
# UserRepository and promotion
# =============================================================================


class TestInsertIfAbsent:
    async def test_insert_then_conflict(self, db_session):
        first = await UserRepository.insert_if_absent(
            db_session,
            email=_EMAIL,
            name="First",
            password_hash="h",
            role="user",
            username="first_user",
        )
        second = await UserRepository.insert_if_absent(
            db_session,
            email=_EMAIL.upper(),
            name="Second",
            password_hash="h",
            role="user",
            username="second_user",
        )

        assert first is not None
        assert second is None
        existing = await UserRepository.get_by_email(db_session, _EMAIL)
        assert existing is not None
        assert existing.name == "First"

    async def test_username_exists(self, db_session):
        await UserRepository.insert_if_absent(
            db_session,
            email=_EMAIL,
            name="First",
            password_hash="h",
            role="user",
            username="taken_name",
        )
        assert await UserRepository.username_exists(db_session, "taken_name")
        assert not await UserRepository.username_exists(db_session, "free_name")


class TestPromotion:
    async def test_promote_creates_user_with_defaults(self, db_session):
        snapshot = _snapshot(name="  ")
        del snapshot["role"]

        result = await promote_pending_user(
            db_session, email=_EMAIL, pending_user=snapshot
        )

        assert result.created is True
        assert result.user.role == "user"
        assert result.user.username == "dbreader"
        assert result.user.name == "dbreader"

    async def test_second_promotion_reports_existing(self, db_session):
        await promote_pending_user(db_session, email=_EMAIL, pending_user=_snapshot())

        result = await promote_pending_user(
            db_session, email=_EMAIL, pending_user=_snapshot()
        )

        assert result.created is False
        assert result.user.email == _EMAIL

    async def test_username_collision_gets_suffix(self, db_session):
        await UserRepository.insert_if_absent(
            db_session,
            email="someone@example.com",
            name="Someone",
            password_hash="h",
            role="user",
            username="dbreader",
        )

        result = await promote_pending_user(
            db_session, email=_EMAIL, pending_user=_snapshot()
        )

        assert result.user.username == "dbreader1"

