"""Helpers for loading optional .env files before the catalog is built."""

from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv  # type: ignore

from core.logging import get_logger

logger = get_logger(__name__)


def load_dotenv_if_available(path: Path | None = None) -> bool:
    """Load environment variables from a .env file when the file exists.

    Values already present in the process environment win over the file.
    Returns ``True`` when a file was read.
    """

    env_path = path or Path(".env")
    if not env_path.exists():
        return False
    loaded = load_dotenv(dotenv_path=env_path, override=False)
    logger.debug("Loaded environment variables from %s", env_path)
    return bool(loaded)


__all__ = ["load_dotenv_if_available"]
