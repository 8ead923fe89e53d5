"""Core building blocks: configuration, validation, persistence and processes."""

from .commands import CommandResult, CommandRunner, command_exists
from .env_file import parse_env_file, update_env_file
from .home import get_installer_home, get_stub_root
from .preferences import InstallerPreferences, load_preferences, save_preferences
from .secrets import SecretStore
from .settings import InstallerConfig

__all__ = [
    "CommandResult",
    "CommandRunner",
    "command_exists",
    "parse_env_file",
    "update_env_file",
    "get_installer_home",
    "get_stub_root",
    "InstallerPreferences",
    "load_preferences",
    "save_preferences",
    "SecretStore",
    "InstallerConfig",
]
