"""Allow-listed external command execution.

Commands are always argv lists (never a shell string) and ``argv[0]`` must be
one of :data:`~tallstack_installer.core.constants.ALLOWED_COMMANDS`.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path

from tallstack_installer.core.constants import ALLOWED_COMMANDS
from tallstack_installer.exceptions import CommandError, CommandNotAllowedError

logger = logging.getLogger(__name__)

CLAUDE_LOCAL_PATH = Path.home() / ".claude" / "local" / "claude"


@dataclass
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)


def command_exists(name: str) -> bool:
    """Check whether an allow-listed tool is on PATH."""
    if name not in ALLOWED_COMMANDS:
        return False
    # `claude migrate-installer` moves the binary out of PATH
    if name == "claude" and CLAUDE_LOCAL_PATH.is_file():
        return True
    return shutil.which(name) is not None


class CommandRunner:
    """Run allow-listed tools and normalise their results."""

    def __init__(self, allowed: frozenset[str] = ALLOWED_COMMANDS, default_timeout: int | None = 1800):
        self.allowed = allowed
        self.default_timeout = default_timeout

    def _check_allowed(self, argv: list[str]) -> None:
        if not argv:
            raise CommandNotAllowedError("Empty command")
        base = Path(argv[0]).name
        if base not in self.allowed:
            raise CommandNotAllowedError(
                f"Command not allowed: {base}",
                actions=[f"Allowed commands: {', '.join(sorted(self.allowed))}"],
            )

    def execute(
        self,
        argv: list[str],
        *,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        stdin_path: Path | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        """Run ``argv`` and return the result without raising on failure."""
        self._check_allowed(argv)
        merged_env = None
        if env:
            merged_env = os.environ.copy()
            merged_env.update(env)

        logger.debug("Running %s (cwd=%s)", " ".join(argv), cwd)
        stdin_handle = open(stdin_path, "rb") if stdin_path else subprocess.DEVNULL
        try:
            completed = subprocess.run(
                argv,
                cwd=str(cwd) if cwd else None,
                env=merged_env,
                stdin=stdin_handle,
                capture_output=True,
                check=False,
                timeout=timeout or self.default_timeout,
            )
            return CommandResult(
                argv=list(argv),
                returncode=completed.returncode,
                stdout=(completed.stdout or b"").decode("utf-8", errors="replace"),
                stderr=(completed.stderr or b"").decode("utf-8", errors="replace"),
            )
        except FileNotFoundError:
            return CommandResult(
                argv=list(argv),
                returncode=127,
                stdout="",
                stderr=f"{argv[0]} executable not found on PATH",
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                argv=list(argv),
                returncode=124,
                stdout="",
                stderr=f"command timed out: {' '.join(argv)}",
            )
        finally:
            if stdin_path:
                stdin_handle.close()

    def run(self, argv: list[str], **kwargs) -> CommandResult:
        """Run ``argv``; a non-zero exit raises :class:`CommandError`."""
        result = self.execute(argv, **kwargs)
        if not result.ok:
            raise CommandError(result.argv, result.returncode, result.output)
        return result


__all__ = ["CommandResult", "CommandRunner", "command_exists", "CLAUDE_LOCAL_PATH"]
