"""
Lightweight environment variable loader for API keys kept in .env files.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List

logger = logging.getLogger(__name__)


def _unquote(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def load_env_if_present(candidate_paths: Iterable[Path]) -> Path | None:
    """
    Load key=value pairs from the first .env-style file that exists.

    Variables already set in the environment are never overridden. Returns the
    file that was loaded, or None.
    """
    for env_path in candidate_paths:
        if not env_path.is_file():
            continue
        try:
            lines = env_path.read_text().splitlines()
        except OSError as exc:
            logger.debug("Skipping unreadable env file %s: %s", env_path, exc)
            continue
        for line in lines:
            stripped = line.strip()
            if stripped.startswith("export "):
                stripped = stripped[len("export ") :].strip()
            if not stripped or stripped.startswith("#") or "=" not in stripped:
                continue
            key, value = stripped.split("=", 1)
            key = key.strip()
            if key and key not in os.environ:
                os.environ[key] = _unquote(value)
        logger.debug("Loaded environment from %s", env_path)
        return env_path
    return None


def default_env_paths() -> List[Path]:
    return [Path.cwd() / ".env", Path.home() / ".config" / "how" / ".env"]


def load_default_env() -> Path | None:
    """Load from common locations: cwd/.env, then ~/.config/how/.env."""
    return load_env_if_present(default_env_paths())


__all__ = ["default_env_paths", "load_default_env", "load_env_if_present"]
