"""
Shared logger utility for the store automation engine.
Provides a consistent logger configuration for all modules.
"""

import logging
import os

DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def get_logger(name: str | None = None, level: str | int | None = None) -> logging.Logger:
    """
    Returns a logger with the specified name, configured with a standard format.
    The level comes from ``level``, then ``AUTOMATION_LOG_LEVEL``, then INFO.
    If no name is provided, returns the root logger.
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(fmt=DEFAULT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    resolved = level or os.getenv("AUTOMATION_LOG_LEVEL", "INFO")
    if isinstance(resolved, str):
        resolved = logging.getLevelName(resolved.upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO
    logger.setLevel(resolved)
    return logger
