"""Shared logging helpers."""

from __future__ import annotations

import logging
import os
from typing import Optional

_CONFIGURED = False
_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def _level_from_env(default: int) -> int:
    raw = os.getenv("LOG_LEVEL")
    if not raw:
        return default
    candidate = logging.getLevelName(raw.strip().upper())
    return candidate if isinstance(candidate, int) else default


def setup_logging(level: Optional[int] = None, *, fmt: Optional[str] = None) -> None:
    """Ensure root logger is configured once."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    resolved = level if level is not None else _level_from_env(logging.INFO)
    logging.basicConfig(level=resolved, format=fmt or _DEFAULT_FORMAT)
    _CONFIGURED = True


def get_logger(name: str, *, level: Optional[int] = None) -> logging.Logger:
    """Return configured logger for a module."""
    setup_logging()
    logger = logging.getLogger(name)
    if level is not None:
        logger.setLevel(level)
    return logger
