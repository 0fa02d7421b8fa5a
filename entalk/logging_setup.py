"""Loguru sink configuration for the CLI."""
from __future__ import annotations

import sys

from loguru import logger

LOG_FORMAT = "<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}"


def configure_logging(settings) -> None:
    """Replace the default sink with stderr (+ optional file) at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level, format=LOG_FORMAT)
    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="10 MB",
            retention=5,
            encoding="utf-8",
        )
