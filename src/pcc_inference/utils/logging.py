"""Logging utilities."""

from __future__ import annotations

import logging
from typing import Optional

PACKAGE_LOGGER = "pcc_inference"

_level = logging.INFO


def get_logger(name: str, level: Optional[int] = None) -> logging.Logger:
    """Return a logger with the package formatter.

    Without an explicit ``level`` the logger follows the package level (INFO
    unless changed by ``set_level``).
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(_level if level is None else level)
    return logger


def set_level(level: int) -> None:
    """Set the package level, including loggers created before the call."""
    global _level
    _level = level
    for name, logger in logging.Logger.manager.loggerDict.items():
        if name.startswith(PACKAGE_LOGGER) and isinstance(logger, logging.Logger):
            logger.setLevel(level)
