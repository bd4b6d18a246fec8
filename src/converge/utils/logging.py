"""Logging setup for converge; parallel branches log from worker threads."""

import logging
import os
import sys
from typing import Optional

LOG_LEVEL_ENV = "CONVERGE_LOG_LEVEL"


def _level_from_env(default: int) -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "").upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


def setup_logging(level: int = logging.WARNING, format_string: Optional[str] = None) -> logging.Logger:
    """
    Configure the converge logger hierarchy.

    Args:
        level: Level used when CONVERGE_LOG_LEVEL is not set (default: WARNING)
        format_string: Custom format string (optional)

    Returns:
        The root "converge" logger
    """
    if format_string is None:
        format_string = "%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s"

    logger = logging.getLogger("converge")
    logger.setLevel(_level_from_env(level))
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(format_string, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(handler)
    return logger


def set_verbosity(verbose: bool) -> None:
    """--verbose switches to DEBUG; otherwise CONVERGE_LOG_LEVEL (or WARNING) applies."""
    logging.getLogger("converge").setLevel(logging.DEBUG if verbose else _level_from_env(logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module."""
    return logging.getLogger(f"converge.{name}")
