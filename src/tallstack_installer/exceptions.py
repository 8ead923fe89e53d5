"""Exception hierarchy for the installer.

Every installer error carries optional ``causes`` and ``actions`` lists that
the error screen renders under POSSIBLE CAUSES and SUGGESTED ACTIONS.
"""

from __future__ import annotations


class InstallerError(Exception):
    """Base class for all installer errors."""

    def __init__(
        self,
        message: str,
        *,
        causes: list[str] | None = None,
        actions: list[str] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.causes = list(causes or [])
        self.actions = list(actions or [])


class InstallationAborted(InstallerError):
    """Raised when the run must stop before completion.

    Covers operator aborts, unresolved directory conflicts and missing
    credentials with no fallback. ``exit_code`` is the process exit code.
    """

    def __init__(self, message: str, *, exit_code: int = 1, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.exit_code = exit_code


class DirectoryConflictError(InstallationAborted):
    """Target project directory already exists and no resolution was chosen."""

    def __init__(self, path) -> None:
        super().__init__(
            f"Directory '{path}' already exists",
            causes=["A previous installation used the same project name"],
            actions=[
                "Choose a different project name",
                "Re-run with --clean to back up or delete the existing directory",
            ],
        )
        self.path = path


class ConfigKeyConflict(InstallerError):
    """A configuration key was set twice without explicit re-entry."""


class CommandNotAllowedError(InstallerError):
    """An external command outside the allow-list was requested."""


class CommandError(InstallerError):
    """An external command exited non-zero.

    ``output`` holds the captured stdout and stderr verbatim.
    """

    def __init__(self, argv: list[str], returncode: int, output: str) -> None:
        command = " ".join(argv)
        super().__init__(
            f"Command failed ({returncode}): {command}\n{output}".rstrip(),
        )
        self.argv = list(argv)
        self.returncode = returncode
        self.output = output


class InvalidDatabaseName(InstallerError, ValueError):
    """Database identifier contains characters outside [a-zA-Z0-9_]."""


class GenerationError(InstallerError):
    """AI content generation could not produce a result."""


class TemplateError(InstallerError):
    """Stub template and substitutions do not line up."""


class SecretStoreError(InstallerError):
    """The secret store could not be read or written."""


class PreferencesError(InstallerError):
    """The installer preferences file is invalid."""


__all__ = [
    "InstallerError",
    "InstallationAborted",
    "DirectoryConflictError",
    "ConfigKeyConflict",
    "CommandNotAllowedError",
    "CommandError",
    "InvalidDatabaseName",
    "GenerationError",
    "TemplateError",
    "SecretStoreError",
    "PreferencesError",
]
