"""Configuration accumulator populated phase by phase during the wizard."""

from __future__ import annotations

import copy
from typing import Any

from tallstack_installer.exceptions import ConfigKeyConflict

_SECRET_SUFFIXES = ("_password", "_api_key", "_token", "password")

_MISSING = object()


class InstallerConfig:
    """Key/value record of every answer the operator gave.

    A key, once set, is never overwritten implicitly: a second ``set`` for the
    same key raises :class:`ConfigKeyConflict` unless ``reenter=True`` marks it
    as an explicit correction (for example re-entered database credentials).
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._features: list[str] = []

    def set(self, key: str, value: Any, *, reenter: bool = False) -> None:
        if key in self._values and not reenter:
            raise ConfigKeyConflict(f"Configuration key '{key}' is already set")
        self._values[key] = value

    def update(self, values: dict[str, Any], *, reenter: bool = False) -> None:
        for key, value in values.items():
            self.set(key, value, reenter=reenter)

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def require(self, key: str) -> Any:
        value = self._values.get(key, _MISSING)
        if value is _MISSING:
            raise KeyError(f"Configuration key '{key}' has not been set")
        return value

    def has(self, key: str) -> bool:
        return key in self._values

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def add_feature(self, label: str) -> None:
        if label not in self._features:
            self._features.append(label)

    @property
    def features(self) -> list[str]:
        return list(self._features)

    @staticmethod
    def is_secret(key: str) -> bool:
        return key.endswith(_SECRET_SUFFIXES)

    def as_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._values)

    def redacted(self) -> dict[str, Any]:
        """Copy of the values with secrets masked, safe for logs and summaries."""
        return {
            key: ("********" if self.is_secret(key) and value else _redact_nested(value))
            for key, value in self._values.items()
        }


def _redact_nested(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            key: ("********" if InstallerConfig.is_secret(key) and item else _redact_nested(item))
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_redact_nested(item) for item in value]
    return copy.deepcopy(value)


__all__ = ["InstallerConfig"]
