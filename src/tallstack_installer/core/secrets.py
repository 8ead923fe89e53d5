"""Restricted-permission store for API keys and tokens collected by the wizard."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import toml
from filelock import FileLock, Timeout

from tallstack_installer.core.home import get_installer_home
from tallstack_installer.exceptions import SecretStoreError

logger = logging.getLogger(__name__)


class SecretStore:
    """Flat ``key = "value"`` TOML file with 600 permissions.

    Values accumulate: ``set`` merges into whatever is already stored.
    """

    def __init__(self, path: Path | None = None):
        self.path = path or get_installer_home() / "secrets.toml"
        self.lock_path = self.path.with_suffix(".lock")

    def _ensure_directory(self) -> None:
        self.path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    def _acquire_lock(self) -> FileLock:
        return FileLock(self.lock_path, timeout=10)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        with open(self.path, "r", encoding="utf-8") as handle:
            data = toml.load(handle)
        return {str(key): str(value) for key, value in data.items() if not isinstance(value, dict)}

    def load(self) -> dict[str, str]:
        """Return every stored secret; an unreadable file raises."""
        try:
            with self._acquire_lock():
                return self._read()
        except toml.TomlDecodeError as exc:
            raise SecretStoreError(f"Secret store {self.path} is corrupt: {exc}") from exc
        except Timeout as exc:
            raise SecretStoreError(
                "Cannot acquire lock on the secret store. Another installer may be running."
            ) from exc

    def get(self, key: str) -> str | None:
        return self.load().get(key)

    def set(self, key: str, value: str) -> None:
        self.set_many({key: value})

    def set_many(self, values: dict[str, str]) -> None:
        """Merge ``values`` into the store and restrict the file to its owner."""
        self._ensure_directory()
        try:
            with self._acquire_lock():
                data = self._read()
                data.update({key: str(value) for key, value in values.items()})
                with open(self.path, "w", encoding="utf-8") as handle:
                    toml.dump(data, handle)
                if os.name != "nt":
                    os.chmod(self.path, 0o600)
        except toml.TomlDecodeError as exc:
            raise SecretStoreError(f"Secret store {self.path} is corrupt: {exc}") from exc
        except Timeout as exc:
            raise SecretStoreError(
                "Cannot acquire lock on the secret store. Another installer may be running."
            ) from exc
        logger.debug("Stored %d secret(s) in %s", len(values), self.path)

    def clear(self) -> None:
        try:
            with self._acquire_lock():
                if self.path.exists():
                    self.path.unlink()
        except Timeout as exc:
            raise SecretStoreError(
                "Cannot acquire lock on the secret store. Another installer may be running."
            ) from exc

    def exists(self) -> bool:
        return self.path.exists()


__all__ = ["SecretStore"]
