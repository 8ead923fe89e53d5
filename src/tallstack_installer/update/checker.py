"""Self-update check for installer checkouts.

When the installer runs from a git clone it compares the local branch with
its upstream, offers to fast-forward, and re-runs itself on the new code.
Network and git failures only produce warnings; the installer then carries
on with the version it already has.
"""

from __future__ import annotations

import logging
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path

from tallstack_installer.core.commands import CommandResult, CommandRunner

logger = logging.getLogger(__name__)

UPDATE_FLAG = "--update"
CLEAN_FLAG = "--clean"


@dataclass
class UpdateStatus:
    checked: bool
    behind: int = 0
    error: str | None = None

    @property
    def update_available(self) -> bool:
        return self.checked and self.behind > 0


def source_root() -> Path:
    """Repository root when running from a src/ checkout."""
    return Path(__file__).resolve().parents[3]


def relaunch_arguments(argv: list[str]) -> list[str]:
    """Arguments for the re-run: ``--update`` removed, ``--clean`` kept or added."""
    arguments = [arg for arg in argv if arg != UPDATE_FLAG]
    if CLEAN_FLAG not in arguments:
        arguments.append(CLEAN_FLAG)
    return arguments


class SelfUpdater:
    def __init__(self, repo_root: Path | None = None, runner: CommandRunner | None = None):
        self.repo_root = repo_root or source_root()
        self.runner = runner or CommandRunner()

    def _git(self, *args: str, timeout: int = 30) -> CommandResult:
        return self.runner.execute(["git", *args], cwd=self.repo_root, timeout=timeout)

    def is_checkout(self) -> bool:
        return (self.repo_root / ".git").exists()

    def current_commit(self) -> str | None:
        if not self.is_checkout():
            return None
        result = self._git("rev-parse", "--short", "HEAD")
        return result.stdout.strip() if result.returncode == 0 else None

    def check(self) -> UpdateStatus:
        if not self.is_checkout():
            return UpdateStatus(checked=False)

        fetch = self._git("fetch", "--quiet")
        if fetch.returncode != 0:
            return UpdateStatus(checked=False, error=fetch.stderr.strip() or "git fetch failed")

        count = self._git("rev-list", "--count", "HEAD..@{u}")
        if count.returncode != 0:
            return UpdateStatus(checked=False, error=count.stderr.strip() or "no upstream branch configured")
        try:
            behind = int(count.stdout.strip() or 0)
        except ValueError:
            return UpdateStatus(checked=False, error=f"unexpected git output: {count.stdout.strip()}")
        return UpdateStatus(checked=True, behind=behind)

    def pull(self) -> CommandResult:
        return self._git("pull", "--ff-only", "--quiet", timeout=120)

    def relaunch(self, argv: list[str]) -> int:
        """Run the updated installer in a child process and return its exit code."""
        command = [sys.executable, "-m", "tallstack_installer", *relaunch_arguments(argv)]
        logger.debug("Relaunching: %s", " ".join(command))
        return subprocess.call(command)


__all__ = ["SelfUpdater", "UpdateStatus", "relaunch_arguments", "source_root"]
