"""
Logging configuration
"""
import logging
import sys
from app.core.config import settings


def get_logger(name: str) -> logging.Logger:
    """
    Return a logger writing to stdout at the configured LOG_LEVEL.

    Args:
        name: Logger name (usually __name__)
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger
