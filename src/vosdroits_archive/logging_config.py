"""Logging configuration for vosdroits-archive."""

import sys
from pathlib import Path

from loguru import logger


def configure_logging(*, verbose: bool = False, log_file: Path | None = None) -> None:
    """Configure loguru: stderr, plus a rotated file for unattended sync runs."""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(sys.stderr, level=level, format="{level.icon} {message}")
    if log_file is not None:
        logger.add(log_file, level=level, rotation="10 MB", retention=5)
