"""Installer home directory and bundled stub discovery."""

from __future__ import annotations

import importlib.resources
import os
from pathlib import Path


def _is_windows() -> bool:
    """Return True when running on Windows."""
    return os.name == "nt"


def get_installer_home() -> Path:
    """Return the per-user installer directory.

    Resolution order:
    1. TALLSTACK_HOME environment variable (all platforms)
    2. ~/.tallstack-installer/ on macOS/Linux
    3. %LOCALAPPDATA%\\tallstack-installer\\ on Windows (via platformdirs)
    """
    if env_home := os.environ.get("TALLSTACK_HOME"):
        return Path(env_home)

    if _is_windows():
        from platformdirs import user_data_dir

        return Path(user_data_dir("tallstack-installer"))

    return Path.home() / ".tallstack-installer"


def get_stub_root() -> Path:
    """Return the directory holding the bundled project stubs.

    Resolution order:
    1. TALLSTACK_STUB_ROOT environment variable (CI/testing)
    2. importlib.resources.files("tallstack_installer") / "stubs"
    """
    if env_root := os.environ.get("TALLSTACK_STUB_ROOT"):
        root = Path(env_root)
        if root.is_dir():
            return root
        raise FileNotFoundError(f"TALLSTACK_STUB_ROOT path does not exist: {env_root}")

    return Path(str(importlib.resources.files("tallstack_installer"))) / "stubs"


__all__ = ["get_installer_home", "get_stub_root"]
