"""Async database engine and session management.

One engine per process; each request gets its own AsyncSession through the
get_db dependency. The session commits when the request handler returns and
rolls back when it raises, so a verify request either both creates the user
and deletes the pending verification or does neither.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from inkwell.core.config import settings

# Bound parameters carry passcodes; never echo or log them
engine = create_async_engine(
    settings.database_url,
    echo=False,
    hide_parameters=True,
    pool_pre_ping=True,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a request-scoped database session."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
