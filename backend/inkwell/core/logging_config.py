"""Process-wide logging setup driven by settings.log_level.

Modules log through the standard library; the app entry point logs through
structlog. Both honor the same level.
"""

import logging

import structlog

from inkwell.core.config import settings

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level_name: str | None = None) -> int:
    """Apply the configured log level to stdlib logging and structlog.

    Args:
        level_name: Level name such as "DEBUG". Defaults to settings.log_level.

    Returns:
        The numeric level applied.

    Raises:
        ValueError: If the level name is unknown.
    """
    name = (level_name or settings.log_level).upper()
    level = logging.getLevelNamesMapping().get(name)
    if level is None:
        msg = f"Unknown log level: {name}"
        raise ValueError(msg)

    logging.basicConfig(level=level, format=_LOG_FORMAT)
    # basicConfig is a no-op once handlers exist
    logging.getLogger().setLevel(level)
    # Statement parameters include passcodes; SQL echo stays off
    logging.getLogger("sqlalchemy.engine").setLevel(max(level, logging.WARNING))

    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
    return level
