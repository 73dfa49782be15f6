import socket
import uuid
from collections.abc import AsyncGenerator, Iterator
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from inkwell.core.config import settings
from inkwell.core.rate_limiting import limiter
from inkwell.models.base import Base
from inkwell.services.pending_verification_store import reset_memory_store

# Use separate test database
TEST_DATABASE_URL = settings.database_url.replace(
    settings.database_name, f"{settings.database_name}_test"
)

# Security: This is a test-only secret. Production uses a real secret from env.
TEST_AUTH_SECRET = "test-secret-key-that-is-at-least-32-characters-long"  # nosec B105  # gitleaks:allow


def create_test_jwt(
    user_id: uuid.UUID,
    *,
    secret: str = TEST_AUTH_SECRET,
    expires_delta: timedelta | None = None,
    iat: datetime | None = None,
) -> str:
    """Create a signed JWT for test authentication.

    Args:
        user_id: User UUID to encode in the sub claim.
        secret: Signing secret (must match settings.auth_secret in tests).
        expires_delta: Time until expiration. Defaults to 1 hour.
        iat: Issued-at time. Defaults to now.

    Returns:
        Encoded JWT string.
    """
    now = datetime.now(UTC)
    payload = {
        "sub": str(user_id),
        "aud": "inkwell",
        "iss": settings.auth_issuer,
        "exp": now + (expires_delta or timedelta(hours=1)),
        "iat": iat or now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on the configured port, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex((settings.database_host, settings.database_port))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available.

    Called by fixtures that require database connection.
    """
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            f"PostgreSQL not available on port {settings.database_port}. "
            "Start database with: docker compose up -d"
        )


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """Create test database engine.

    Skips test if PostgreSQL is not available (e.g., Docker not running).
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def _reset_otp_state() -> Iterator[None]:
    """Isolate tests from the in-memory store singleton and rate limits."""
    reset_memory_store()
    original_enabled = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = original_enabled
    reset_memory_store()


# =============================================================================
# API Test Fixtures
# =============================================================================


class RecordingSender:
    """Notification sink that captures codes instead of emailing them."""

    def __init__(self) -> None:
        self.sent: list[dict] = []

    async def __call__(self, *, email: str, code: str, expires_at: datetime) -> None:
        self.sent.append({"email": email, "code": code, "expires_at": expires_at})

    @property
    def last_code(self) -> str:
        return self.sent[-1]["code"]


@pytest.fixture
def sender() -> RecordingSender:
    """Recording notification sink."""
    return RecordingSender()


@pytest.fixture
def auth_settings() -> Iterator[None]:
    """Install the test JWT secret and plain-HTTP cookies."""
    original_secret = settings.auth_secret
    original_secure = settings.auth_cookie_secure
    settings.auth_secret = SecretStr(TEST_AUTH_SECRET)
    settings.auth_cookie_secure = False
    yield
    settings.auth_secret = original_secret
    settings.auth_cookie_secure = original_secure


@pytest.fixture
def mock_db() -> AsyncMock:
    """Stand-in AsyncSession for endpoint tests that patch repositories."""
    return AsyncMock()


@pytest_asyncio.fixture
async def memory_client(
    mock_db: AsyncMock,
    sender: RecordingSender,
    auth_settings,  # noqa: ARG001 - installs test secret
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the memory store backend with a mocked DB session."""
    from inkwell.api.deps import get_otp_sender
    from inkwell.core.database import get_db
    from inkwell.main import app

    original_backend = settings.otp_store_backend
    settings.otp_store_backend = "memory"

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_otp_sender] = lambda: sender

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    settings.otp_store_backend = original_backend
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def db_client(
    db_engine,
    sender: RecordingSender,
    auth_settings,  # noqa: ARG001 - installs test secret
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client over the test PostgreSQL database (database backend)."""
    from inkwell.api.deps import get_otp_sender
    from inkwell.core.database import get_db
    from inkwell.main import app

    test_session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Mirrors get_db: commit on success, roll back on error
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with test_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    original_backend = settings.otp_store_backend
    settings.otp_store_backend = "database"
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_otp_sender] = lambda: sender

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    settings.otp_store_backend = original_backend
    app.dependency_overrides.clear()
