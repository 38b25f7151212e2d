"""Shared logger used across the calculator site."""
import logging
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

logger: logging.Logger = logging.getLogger("calculator_site")


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach a single stream handler to the shared logger and set its level.

    Calling it again only updates the level.

    :param str level: Logging level name (e.g. "INFO", "DEBUG")

    :return: The configured logger
    :rtype: logging.Logger
    """
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger
