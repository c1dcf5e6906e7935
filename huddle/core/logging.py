"""
Logging setup for the service.

Every module logs through a named child of the "huddle" logger
(e.g. "huddle.routers.google_auth"), so a single handler installed here
covers the whole application.

Log Format:
===========
    [2025-12-04 14:00:00] INFO [huddle.services.login_flow] message
"""

import logging
import sys

ROOT_LOGGER_NAME = "huddle"

LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach a stdout handler to the "huddle" logger.

    Safe to call more than once (e.g. app reloads in tests): the handler is
    only added if the logger has none yet.

    Args:
        level: Log level name from settings (LOG_LEVEL)

    Returns:
        The configured root application logger
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper())

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    return logger
