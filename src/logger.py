"""
Centralized logging.

Every module asks for its logger here so output format and level
stay the same across the package.
"""

import logging
import sys

from src.config import get_settings


def get_logger(name: str) -> logging.Logger:
    """
    Configure and return a logger with the standard format.

    Args:
        name: Name of the calling module (usually __name__).

    Returns:
        Configured logger instance.
    """
    logger = logging.getLogger(name)

    # Avoid stacking handlers when a module asks twice
    if not logger.handlers:
        logger.setLevel(get_settings().log_level)

        formatter = logging.Formatter("[%(asctime)s] %(levelname)s in %(module)s: %(message)s")

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)

        logger.addHandler(handler)

    return logger
