"""Username (handle) normalization and suggestion.

Handles are 3-20 characters of lowercase letters, digits and underscores.
Suggestions are derived from a seed (usually the local part of an email)
and made unique by appending a counter.
"""

import re
import secrets
import string

from sqlalchemy.ext.asyncio import AsyncSession

from inkwell.repositories.user_repository import UserRepository

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
USERNAME_REGEX = re.compile(r"^[a-z0-9_]{3,20}$")
USERNAME_REQUIREMENTS_MESSAGE = (
    "Username must be 3-20 characters and may include lowercase letters, "
    "numbers, or underscores."
)

_DISALLOWED_CHARS = re.compile(r"[^a-z0-9_]")
_REPEATED_UNDERSCORES = re.compile(r"_{2,}")
_RANDOM_ALPHABET = string.ascii_lowercase + string.digits
_RANDOM_SUFFIX_LENGTH = 6
_MAX_SUGGESTION_ATTEMPTS = 1000


def normalize_username(value: str) -> str:
    """Trim, lowercase and drop characters outside [a-z0-9_]."""
    return _DISALLOWED_CHARS.sub("", value.strip().lower())


def is_valid_username(value: str) -> bool:
    """Check a username against the handle format."""
    return bool(USERNAME_REGEX.fullmatch(value))


def build_username_base(seed: str) -> str:
    """Derive a handle base from a seed.

    Falls back to ``user`` plus six random characters when the cleaned
    seed is shorter than the minimum length.

    Args:
        seed: Free-form text, e.g. a display name or email local part.

    Returns:
        Base handle of at most USERNAME_MAX_LENGTH characters.
    """
    cleaned = _REPEATED_UNDERSCORES.sub("_", normalize_username(seed)).strip("_")
    if len(cleaned) >= USERNAME_MIN_LENGTH:
        return cleaned[:USERNAME_MAX_LENGTH]

    suffix = "".join(
        secrets.choice(_RANDOM_ALPHABET) for _ in range(_RANDOM_SUFFIX_LENGTH)
    )
    return f"user{suffix}"


def _with_suffix(base: str, suffix: str) -> str:
    """Append suffix, trimming base so the result fits the max length."""
    keep = max(USERNAME_MIN_LENGTH, USERNAME_MAX_LENGTH - len(suffix))
    return f"{base[:keep]}{suffix}"


async def generate_username_suggestion(db: AsyncSession, seed: str) -> str:
    """Find an available username derived from seed.

    Tries the base itself, then base1, base2, ... until a free, valid
    handle turns up.

    Args:
        db: Async database session (availability checks).
        seed: Text to derive the handle from.

    Returns:
        An unused, valid username.

    Raises:
        RuntimeError: If no candidate is free after the attempt budget.
    """
    base = build_username_base(seed)

    for attempt in range(_MAX_SUGGESTION_ATTEMPTS):
        candidate = _with_suffix(base, str(attempt) if attempt else "")
        if not is_valid_username(candidate):
            continue
        if not await UserRepository.username_exists(db, candidate):
            return candidate

    msg = "Unable to generate an available username."
    raise RuntimeError(msg)
