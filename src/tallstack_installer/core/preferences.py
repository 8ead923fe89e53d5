"""Installer preferences stored in ``<home>/config.yaml``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from tallstack_installer.core.home import get_installer_home
from tallstack_installer.exceptions import PreferencesError


@dataclass(slots=True)
class InstallerPreferences:
    """Tunables for AI generation, the database probe and update checks."""

    ai_model: str = "claude-sonnet-4-5"
    ai_max_tokens: int = 16000
    ai_timeout_seconds: float = 90.0
    ai_poll_interval_seconds: float = 2.0
    db_connect_timeout_seconds: int = 5
    db_max_attempts: int = 3
    update_check: bool = True

    def to_dict(self) -> dict[str, dict[str, object]]:
        return {
            "ai": {
                "model": self.ai_model,
                "max_tokens": self.ai_max_tokens,
                "timeout_seconds": self.ai_timeout_seconds,
                "poll_interval_seconds": self.ai_poll_interval_seconds,
            },
            "database": {
                "connect_timeout_seconds": self.db_connect_timeout_seconds,
                "max_attempts": self.db_max_attempts,
            },
            "update": {
                "check": self.update_check,
            },
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> "InstallerPreferences":
        prefs = cls()
        if not isinstance(data, dict):
            return prefs

        ai = data.get("ai") if isinstance(data.get("ai"), dict) else {}
        database = data.get("database") if isinstance(data.get("database"), dict) else {}
        update = data.get("update") if isinstance(data.get("update"), dict) else {}

        prefs.ai_model = _coerce(ai.get("model"), prefs.ai_model)
        prefs.ai_max_tokens = _coerce(ai.get("max_tokens"), prefs.ai_max_tokens)
        prefs.ai_timeout_seconds = _coerce(ai.get("timeout_seconds"), prefs.ai_timeout_seconds)
        prefs.ai_poll_interval_seconds = _coerce(
            ai.get("poll_interval_seconds"), prefs.ai_poll_interval_seconds
        )
        prefs.db_connect_timeout_seconds = _coerce(
            database.get("connect_timeout_seconds"), prefs.db_connect_timeout_seconds
        )
        prefs.db_max_attempts = _coerce(database.get("max_attempts"), prefs.db_max_attempts)
        prefs.update_check = _coerce(update.get("check"), prefs.update_check)
        return prefs


def _coerce(value: object, default):
    """Convert ``value`` to the type of ``default``; fall back on failure."""
    if value is None:
        return default
    target = type(default)
    if target is bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return default
    try:
        return target(value)
    except (TypeError, ValueError):
        return default


def preferences_path(home: Path | None = None) -> Path:
    return (home or get_installer_home()) / "config.yaml"


def load_preferences(home: Path | None = None) -> InstallerPreferences:
    """Load preferences, returning defaults when the file does not exist."""
    path = preferences_path(home)
    if not path.exists():
        return InstallerPreferences()

    yaml = YAML()
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.load(handle) or {}
    except YAMLError as exc:
        raise PreferencesError(
            f"Failed to parse {path}: {exc}",
            actions=[f"Fix or delete {path}"],
        ) from exc
    return InstallerPreferences.from_dict(payload)


def save_preferences(prefs: InstallerPreferences, home: Path | None = None) -> Path:
    """Write preferences, preserving unrelated top-level sections."""
    path = preferences_path(home)
    path.parent.mkdir(parents=True, exist_ok=True)

    yaml = YAML()
    yaml.preserve_quotes = True

    payload: dict = {}
    if path.exists():
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.load(handle) or {}
        if not isinstance(payload, dict):
            payload = {}

    payload.update(prefs.to_dict())

    with path.open("w", encoding="utf-8") as handle:
        yaml.dump(payload, handle)
    return path


__all__ = [
    "InstallerPreferences",
    "load_preferences",
    "save_preferences",
    "preferences_path",
]
