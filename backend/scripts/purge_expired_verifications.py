"""Purge expired pending verifications.

Standalone maintenance script, meant for cron or a scheduled container.

Usage:
    cd backend && python -m scripts.purge_expired_verifications
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


async def main() -> None:
    """CLI entry point: purge against the configured database."""
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from inkwell.core.config import settings
    from inkwell.core.logging_config import configure_logging
    from inkwell.services.pending_verification_store import (
        DatabasePendingVerificationStore,
    )
    from inkwell.services.verification_cleanup import purge_expired_verifications

    configure_logging()

    engine = create_async_engine(
        settings.database_url, echo=False, hide_parameters=True
    )
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        result = await purge_expired_verifications(
            DatabasePendingVerificationStore(session)
        )

    await engine.dispose()

    logger.info("Final stats: %s", result)


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
