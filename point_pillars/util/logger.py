"""Logging utilities for the point_pillars package.

All module loggers are children of the ``point_pillars`` package logger, which
owns the one console handler. Its level comes from the optional ``logging``
section of the YAML config, so the encoders' DEBUG diagnostics can be turned
on without touching ``print_time``.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, Optional

PACKAGE_LOGGER = "point_pillars"

# LEVEL - YYYY-MM-DD HH:MM:SS - filename:line - function - message
DEFAULT_FORMAT = (
    "%(levelname)-8s - %(asctime)s - %(filename)s:%(lineno)d - "
    "%(funcName)s() - %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logger(level: int | str = logging.INFO) -> logging.Logger:
    """Set the package log level, adding the console handler on first use.

    Args:
        level: Logging level or level name (default: INFO)

    Returns:
        The package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if not logger.handlers:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(DEFAULT_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(console_handler)

    return logger


def configure_logging(config: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """Apply the ``logging`` section of a loaded configuration.

    A missing section leaves the package at INFO.
    """
    section = (config or {}).get("logging") or {}
    return setup_logger(section.get("level", logging.INFO))


def get_logger(name: str) -> logging.Logger:
    """Get the logger for a module (typically ``__name__``)."""
    if not logging.getLogger(PACKAGE_LOGGER).handlers:
        setup_logger()
    return logging.getLogger(name)
