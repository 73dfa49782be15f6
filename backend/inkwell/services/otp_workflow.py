"""One-time passcode registration workflow.

State per email:

    NoPending --issue--> Pending(active) --time--> Pending(expired)
    Pending(active)  --verify ok--> User exists, NoPending
    Pending(expired) --verify-->    NoPending (purged, OTP_EXPIRED)
    Pending(*)       --issue-->     Pending(active), counters reset
    Pending(*)       --resend-->    Pending(active), attempts kept

The plaintext code leaves this module only through the send callable.
It is never logged, returned to the API layer's response, or put into an
error message.
"""

import hmac
import logging
import math
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Protocol

from inkwell.core.clock import Clock, utc_now
from inkwell.core.config import settings
from inkwell.core.errors import (
    InvalidOtpError,
    OtpExpiredError,
    OtpNotFoundError,
    PendingDataIncompleteError,
    ResendTooSoonError,
)
from inkwell.services.account_promotion import PromotionResult
from inkwell.services.passcode import generate_passcode
from inkwell.services.pending_verification_store import (
    PendingUser,
    PendingVerificationRecord,
    PendingVerificationStore,
)

logger = logging.getLogger(__name__)


class SendOtp(Protocol):
    """Notification sink: delivers a code out-of-band."""

    async def __call__(self, *, email: str, code: str, expires_at: datetime) -> None:
        ...


PromotePendingUser = Callable[[str, PendingUser], Awaitable[PromotionResult]]


def normalize_email(email: str) -> str:
    """Trim and lowercase an email address (the pending-record key)."""
    return email.strip().lower()


def mask_email(email: str) -> str:
    """Mask the local part of an email for log lines."""
    local, _, domain = email.partition("@")
    return f"{local[:1]}***@{domain}"


class OtpWorkflow:
    """Issue, resend and verify one-time passcodes for pending registrations.

    One instance per request. The store provides per-key atomic mutations,
    so no locking happens here.

    Args:
        store: Pending-verification store for this request.
        clock: Source of the current time.
        expiry: Lifetime of each issued code.
        resend_interval: Minimum spacing between sends to one email.
        generate_code: Passcode generator.
    """

    def __init__(
        self,
        store: PendingVerificationStore,
        *,
        clock: Clock = utc_now,
        expiry: timedelta | None = None,
        resend_interval: timedelta | None = None,
        generate_code: Callable[[], str] = generate_passcode,
    ) -> None:
        self._store = store
        self._clock = clock
        self._expiry = expiry or timedelta(minutes=settings.otp_expiry_minutes)
        self._resend_interval = resend_interval or timedelta(
            minutes=settings.otp_resend_interval_minutes
        )
        self._generate_code = generate_code

    @property
    def resend_interval(self) -> timedelta:
        """Minimum spacing between sends to one email."""
        return self._resend_interval

    async def issue(
        self,
        email: str,
        pending_user: PendingUser,
        send: SendOtp,
    ) -> PendingVerificationRecord:
        """Start (or restart) verification for an email.

        Replaces any existing pending record with a fresh code and zeroed
        counters, then sends the code. The caller must already have checked
        that no user exists for the email.

        If sending fails the error propagates and the written record stays,
        so the user can ask for a resend.

        Args:
            email: Email address (normalized here).
            pending_user: Snapshot of the account to create.
            send: Notification sink.

        Returns:
            The stored record.

        Raises:
            ValueError: If email is blank or the snapshot is empty.
        """
        key = normalize_email(email)
        if not key:
            msg = "Email is required to create OTP."
            raise ValueError(msg)
        if not pending_user:
            msg = "Pending user payload is required to create OTP."
            raise ValueError(msg)

        now = self._clock()
        record = await self._store.upsert_issue(
            key,
            code=self._generate_code(),
            expires_at=now + self._expiry,
            now=now,
            pending_user=pending_user,
        )
        # Durable before sending: a failed send leaves the record for resend
        await self._store.commit()
        logger.info("Issued verification code for %s", mask_email(key))

        await send(email=key, code=record.code, expires_at=record.expires_at)
        return record

    async def resend(self, email: str, send: SendOtp) -> PendingVerificationRecord:
        """Send a new code for an existing pending verification.

        Resend is allowed on expired records too; only the cooldown gates
        it. The failed-attempt counter carries over.

        Args:
            email: Email address (normalized here).
            send: Notification sink.

        Returns:
            The updated record.

        Raises:
            OtpNotFoundError: No pending verification for the email.
            ResendTooSoonError: Cooldown not yet elapsed.
        """
        key = normalize_email(email)
        record = await self._store.find(key)
        if record is None:
            raise OtpNotFoundError()

        now = self._clock()
        elapsed = now - record.last_sent_at
        if elapsed < self._resend_interval:
            remaining = self._resend_interval - elapsed
            raise ResendTooSoonError(
                wait_seconds=math.ceil(remaining.total_seconds())
            )

        updated = await self._store.record_resend(
            key,
            code=self._generate_code(),
            expires_at=now + self._expiry,
            now=now,
        )
        if updated is None:
            raise OtpNotFoundError()
        logger.info(
            "Resent verification code for %s (resend #%d)",
            mask_email(key),
            updated.resend_count,
        )
        await self._store.commit()

        await send(email=key, code=updated.code, expires_at=updated.expires_at)
        return updated

    async def verify(
        self,
        email: str,
        code: str,
        promote: PromotePendingUser,
    ) -> PromotionResult:
        """Check a submitted code and promote the registration on success.

        Args:
            email: Email address (normalized here).
            code: Submitted code; surrounding whitespace is ignored.
            promote: Account promotion for the verified snapshot.

        Returns:
            PromotionResult; created is False if the user already existed.

        Raises:
            OtpNotFoundError: No pending verification for the email.
            OtpExpiredError: Code expired; the record has been deleted.
            InvalidOtpError: Code mismatch; attempts was incremented.
            PendingDataIncompleteError: Snapshot cannot be promoted; the
                record has been deleted.
        """
        key = normalize_email(email)
        record = await self._store.find(key)
        if record is None:
            raise OtpNotFoundError()

        if record.is_expired(self._clock()):
            await self._store.delete(key)
            await self._store.commit()
            logger.info("Purged expired verification for %s", mask_email(key))
            raise OtpExpiredError()

        submitted = str(code).strip()
        if not hmac.compare_digest(record.code.encode(), submitted.encode()):
            attempts = await self._store.record_failed_attempt(key)
            await self._store.commit()
            logger.info(
                "Rejected verification code for %s (attempt %s)",
                mask_email(key),
                attempts,
            )
            raise InvalidOtpError()

        try:
            result = await promote(key, record.pending_user)
        except PendingDataIncompleteError:
            # Snapshot is unrecoverable; the client must register again
            await self._store.delete(key)
            await self._store.commit()
            raise

        await self._store.delete(key)
        await self._store.commit()
        return result
