# libs/insights_shared/logging.py
"""
Standardized logging configuration for all services.
"""

import logging
import sys
from typing import Optional


def get_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name, typically __name__ from the calling module
        level: Optional level name (e.g. "DEBUG") applied on first configuration

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
            '"logger": "%(name)s", "message": "%(message)s"}'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

        if level:
            logger.setLevel(level.upper())

    return logger


def configure_logging(level: str, *names: str) -> None:
    """
    Set the level of package-level loggers.

    Module loggers created by ``get_logger`` without a level inherit it,
    e.g. ``configure_logging("DEBUG", "analytics")`` reaches
    ``analytics.parser``.
    """
    for name in names:
        logging.getLogger(name).setLevel(level.upper())
