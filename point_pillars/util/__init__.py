"""Shared utilities: logging and configuration."""

from .logger import setup_logger, configure_logging, get_logger, PACKAGE_LOGGER
from .config import load_config, get_section, grid_kwargs, DEFAULT_CONFIG_PATH

__all__ = [
    "setup_logger",
    "configure_logging",
    "get_logger",
    "PACKAGE_LOGGER",
    "load_config",
    "get_section",
    "grid_kwargs",
    "DEFAULT_CONFIG_PATH",
]
