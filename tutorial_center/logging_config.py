"""
Logging setup for the tutorial center backend.

Every module logs through ``logging.getLogger(__name__)``; this module only
attaches a console handler to the package logger so the host process does
not have to.
"""
import logging

from tutorial_center.config import settings

LOGGER_NAME = "tutorial_center"

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str | None = None) -> logging.Logger:
    """
    Attach a console handler to the package logger and set its level.

    Safe to call more than once: the handler is only added the first time,
    later calls just adjust the level.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel((level or settings.LOG_LEVEL).upper())

    # Avoid duplicate handlers
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT))
        logger.addHandler(handler)

    return logger
