"""Environment variable helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from core.logging import get_logger

logger = get_logger(__name__)


def env_str(key: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(key, default)
    if value is None:
        logger.debug("Environment variable %s not set. Using default=%s.", key, default)
    return value


def env_path(key: str) -> Optional[Path]:
    """Return the path named by ``key`` or ``None`` when unset or blank."""
    raw = os.getenv(key)
    if raw is None or not raw.strip():
        return None
    return Path(raw.strip())
