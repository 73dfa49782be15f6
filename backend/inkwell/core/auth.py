"""Authentication helpers for password hashing, JWT creation and cookies.

Pipeline:
- hash_password / verify_password: bcrypt (cost 12)
- create_jwt / set_auth_cookie / clear_auth_cookie: session issuance
- DUMMY_HASH: Timing-safe constant for user enumeration defense
"""

from datetime import UTC, datetime, timedelta

import bcrypt
import jwt
from fastapi import Response

from inkwell.core.config import settings

JWT_AUDIENCE = "inkwell"

# Default JWT expiration: 1 day
_DEFAULT_EXPIRATION = timedelta(days=1)

# bcrypt cost factor for password hashing
_BCRYPT_ROUNDS = 12

# Pre-computed bcrypt hash for timing-safe comparison on user-not-found.
# Security: prevents user enumeration via response time differences.
DUMMY_HASH = b"$2b$12$ZP2PVB8yI35X.mkRqcUPUuSzJA1CNRt4dZ7X3cyrfJu.2S3w.Qen2"


def hash_password(password: str) -> str:
    """Hash a plain-text password with bcrypt.

    Args:
        password: Plain-text password.

    Returns:
        bcrypt hash as a string.
    """
    return bcrypt.hashpw(
        password.encode(), bcrypt.gensalt(rounds=_BCRYPT_ROUNDS)
    ).decode()


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored hash in constant time.

    Runs a comparison against DUMMY_HASH when there is no stored hash so
    response time does not reveal whether the account exists.

    Args:
        password: Plain-text password.
        password_hash: Stored bcrypt hash, or None.

    Returns:
        True if the password matches.
    """
    if not password_hash:
        bcrypt.checkpw(password.encode(), DUMMY_HASH)
        return False
    return bcrypt.checkpw(password.encode(), password_hash.encode())


def create_jwt(
    *,
    user_id: str,
    secret: str,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a signed JWT with standard claims.

    Args:
        user_id: User UUID string for the sub claim.
        secret: HMAC signing secret.
        expires_delta: Time until expiration. Defaults to 1 day.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": user_id,
        "aud": JWT_AUDIENCE,
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or _DEFAULT_EXPIRATION),
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def set_auth_cookie(response: Response, token: str) -> None:
    """Set httpOnly JWT cookie on response.

    Args:
        response: FastAPI response object.
        token: JWT token string.
    """
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
        max_age=int(_DEFAULT_EXPIRATION.total_seconds()),
        domain=settings.auth_cookie_domain or None,
    )


def clear_auth_cookie(response: Response) -> None:
    """Delete the JWT cookie.

    Cookie attributes must match set_auth_cookie() for browsers to delete it.
    """
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        secure=settings.auth_cookie_secure,
        samesite=settings.auth_cookie_samesite,
        domain=settings.auth_cookie_domain or None,
    )
