"""Account promotion: turn a verified registration snapshot into a User.

Promotion is an idempotent insert-by-email. When two verify requests with
the correct code race, exactly one inserts the row and the other observes
the existing user and reports it as already verified.

Usernames are picked before the insert. If a concurrent promotion for a
different email claims the same username first, the insert is retried
inside a SAVEPOINT with a fresh suggestion.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.core.errors import PendingDataIncompleteError
from inkwell.models.user import DEFAULT_ROLE, User
from inkwell.repositories.user_repository import UserRepository
from inkwell.services.pending_verification_store import PendingUser
from inkwell.services.username import generate_username_suggestion

logger = logging.getLogger(__name__)

_USERNAME_CLAIM_ATTEMPTS = 3


@dataclass(frozen=True)
class PromotionResult:
    """Outcome of promoting a pending registration.

    Attributes:
        user: The permanent account for the email.
        created: False when the account already existed (already verified).
    """

    user: User
    created: bool


async def promote_pending_user(
    db: AsyncSession,
    *,
    email: str,
    pending_user: PendingUser,
) -> PromotionResult:
    """Create the permanent account for a verified email exactly once.

    Defaults applied during promotion:
    - role falls back to "user" when missing, empty or null.
    - username is generated from the email's local part when the snapshot
      has none.
    - name falls back to the username when missing or blank.

    Args:
        db: Async database session (same transaction as the pending-record
            delete).
        email: Normalized email address.
        pending_user: Snapshot captured at registration.

    Returns:
        PromotionResult with the new or already-existing user.

    Raises:
        PendingDataIncompleteError: If the snapshot lacks a password hash.
        IntegrityError: If every username candidate was claimed concurrently.
    """
    password_hash = pending_user.get("password_hash")
    if not password_hash:
        raise PendingDataIncompleteError()

    role = pending_user.get("role") or DEFAULT_ROLE
    seed = email.split("@", 1)[0]
    username = pending_user.get("username") or await generate_username_suggestion(
        db, seed
    )

    for attempt in range(1, _USERNAME_CLAIM_ATTEMPTS + 1):
        try:
            # SAVEPOINT keeps the request transaction usable after a conflict
            async with db.begin_nested():
                user = await UserRepository.insert_if_absent(
                    db,
                    email=email,
                    name=(pending_user.get("name") or "").strip() or username,
                    password_hash=password_hash,
                    role=role,
                    username=username,
                    avatar=pending_user.get("avatar"),
                )
            break
        except IntegrityError:
            # Email conflicts never raise; this is the unique username index
            if attempt == _USERNAME_CLAIM_ATTEMPTS:
                raise
            logger.info(
                "Username claimed by a concurrent promotion, retrying (attempt %d)",
                attempt,
            )
            username = await generate_username_suggestion(db, seed)

    if user is not None:
        logger.info("Promoted pending registration to user %s", user.id)
        return PromotionResult(user=user, created=True)

    existing = await UserRepository.get_by_email(db, email)
    if existing is None:
        # Conflict reported but the row is gone: deleted between statements
        msg = "User insert conflicted but no user exists for the email"
        raise RuntimeError(msg)

    logger.info("Pending registration already promoted to user %s", existing.id)
    return PromotionResult(user=existing, created=False)
