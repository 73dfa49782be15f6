"""Expired pending-verification cleanup.

Expired records are already rejected (and purged) lazily when someone
tries to verify them. This job removes the ones nobody came back for, so
abandoned registration snapshots do not accumulate.

Intended to run periodically, e.g. via scripts/purge_expired_verifications.py.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError

from inkwell.core.clock import Clock, utc_now
from inkwell.core.errors import APIError
from inkwell.services.pending_verification_store import PendingVerificationStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationCleanupResult:
    """Result of one purge run.

    Attributes:
        deleted: Number of expired pending verifications removed.
        ran_at: Reference time used for the expiry comparison.
    """

    deleted: int
    ran_at: datetime


class CleanupError(APIError):
    """Raised when the purge fails at the storage level."""

    def __init__(self, message: str) -> None:
        super().__init__(
            code="CLEANUP_ERROR",
            message=message,
            status_code=500,
        )


async def purge_expired_verifications(
    store: PendingVerificationStore,
    *,
    clock: Clock = utc_now,
) -> VerificationCleanupResult:
    """Delete every pending verification whose code has expired.

    Args:
        store: Pending-verification store to purge.
        clock: Source of the current time.

    Returns:
        VerificationCleanupResult with the deletion count.

    Raises:
        CleanupError: If the database operation fails.
    """
    now = clock()
    try:
        deleted = await store.delete_expired(now)
        await store.commit()
    except SQLAlchemyError as exc:
        logger.error("Expired verification cleanup failed: %s", exc)
        raise CleanupError("Expired verification cleanup failed") from exc

    logger.info("Purged %d expired pending verification(s)", deleted)
    return VerificationCleanupResult(deleted=deleted, ran_at=now)
