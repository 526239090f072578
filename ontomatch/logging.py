"""Package-local logging utilities.

ontomatch is a library first. By default it emits no logs unless the host
application configures logging. Users can opt into logs via
``configure_logging()`` or the ``ONTOMATCH_LOG_LEVEL`` environment variable.
"""

import logging
import os
from typing import Optional

LOGGER_NAME = "ontomatch"
LOG_LEVEL_ENV = "ONTOMATCH_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger = logging.getLogger(LOGGER_NAME)
logger.addHandler(logging.NullHandler())


def configure_logging(level: Optional[str] = None) -> None:
    """Configure package logging for runtime diagnostics.

    If neither ``level`` nor ``ONTOMATCH_LOG_LEVEL`` is provided, the
    package logger is put back into its silent default state.

    Args:
        level: Level name such as "DEBUG" or "info". Unknown names fall
            back to INFO.
    """
    env_level = os.getenv(LOG_LEVEL_ENV, "")
    raw_level = level if level is not None else (env_level or "")
    resolved_level = raw_level.strip()
    pkg_logger = logging.getLogger(LOGGER_NAME)
    # Reset handlers so repeated calls never stack stderr streams.
    pkg_logger.handlers = []

    if not resolved_level:
        pkg_logger.addHandler(logging.NullHandler())
        pkg_logger.setLevel(logging.NOTSET)
        pkg_logger.propagate = False
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    pkg_logger.addHandler(handler)
    pkg_logger.setLevel(getattr(logging, resolved_level.upper(), logging.INFO))
    pkg_logger.propagate = False
