"""Environment helpers for the automation engine.

Loads a ``.env`` file from the project root and collects the ``AUTOMATION_*``
variables the configuration loader understands.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from dotenv import load_dotenv

__all__ = ["ENV_PREFIX", "automation_environment", "load_project_dotenv"]

ENV_PREFIX = "AUTOMATION_"
PROJECT_MARKER = "pyproject.toml"


def _find_project_root(start: Path | None = None) -> Path:
    """Walk upwards until a directory holding ``pyproject.toml`` is found."""
    current = start or Path(__file__).resolve().parent
    for _ in range(10):
        if (current / PROJECT_MARKER).exists():
            return current
        if current.parent == current:
            break
        current = current.parent
    return Path(__file__).resolve().parent


def load_project_dotenv(start: Path | None = None) -> bool:
    """Load the project-level ``.env`` without overriding variables already set.

    Returns True when a file was found and loaded.
    """
    dotenv_path = _find_project_root(start) / ".env"
    if not dotenv_path.exists():
        return False
    return load_dotenv(dotenv_path=dotenv_path, override=False)


def automation_environment(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Subset of ``environ`` (default ``os.environ``) whose keys carry the engine prefix."""
    source = os.environ if environ is None else environ
    return {key: value for key, value in source.items() if key.startswith(ENV_PREFIX)}
