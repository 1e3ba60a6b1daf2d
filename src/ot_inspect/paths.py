"""Path resolution for OneTool Inspect.

Config lookup uses the OneTool directory layout:
- Global: ~/.onetool/ (user-wide settings)
- Project: .onetool/ (project-specific config)

Browser profiles live in per-process directories under the system temp dir
so concurrent runs never share a profile.
"""

from __future__ import annotations

import os
import secrets
import tempfile
from pathlib import Path

# Directory names
GLOBAL_DIR_NAME = ".onetool"
PROJECT_DIR_NAME = ".onetool"

# Prefix for per-process browser profile directories
PROFILE_DIR_PREFIX = "ot-inspect-"

# Files the browser writes to on first use
PROFILE_LOG_FILES = ("chrome-out.log", "chrome-err.log")


def get_effective_cwd() -> Path:
    """Get the effective working directory.

    Returns OT_CWD if set, else Path.cwd().
    """
    env_cwd = os.getenv("OT_CWD")
    if env_cwd:
        return Path(env_cwd).resolve()
    return Path.cwd()


def get_global_dir() -> Path:
    """Get the global OneTool directory path (not necessarily existing)."""
    return Path.home() / GLOBAL_DIR_NAME


def get_project_dir(start: Path | None = None) -> Path | None:
    """Get cwd/.onetool if it exists, else None. No tree-walking."""
    cwd = start or get_effective_cwd()
    candidate = cwd / PROJECT_DIR_NAME
    if candidate.is_dir():
        return candidate
    return None


def create_profile_dir(base: Path | None = None) -> Path:
    """Create an isolated browser profile directory.

    The directory gets a random suffix and mode 0700, and the log files the
    browser appends to are created up front so the first write never races
    against a missing file.

    Args:
        base: Parent directory (default: system temp dir)

    Returns:
        Path to the new profile directory
    """
    parent = base or Path(tempfile.gettempdir())
    profile_dir = parent / f"{PROFILE_DIR_PREFIX}{secrets.token_hex(8)}"
    profile_dir.mkdir(mode=0o700, parents=True, exist_ok=False)
    for name in PROFILE_LOG_FILES:
        (profile_dir / name).touch()
    return profile_dir
