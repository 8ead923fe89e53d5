from __future__ import annotations

from pathlib import Path

import pytest
import typer

from tallstack_installer.cli.commands.install import maybe_self_update
from tallstack_installer.core.commands import CommandResult, CommandRunner
from tallstack_installer.exceptions import CommandNotAllowedError
from tallstack_installer.update.checker import SelfUpdater, UpdateStatus, relaunch_arguments


class ScriptedGit(CommandRunner):
    """Runner that answers git subcommands from a table instead of spawning."""

    def __init__(self, responses: dict[str, tuple[int, str, str]]):
        super().__init__()
        self.responses = responses
        self.calls: list[list[str]] = []

    def execute(self, argv: list[str], **kwargs) -> CommandResult:
        self._check_allowed(argv)
        self.calls.append(argv[1:])
        returncode, stdout, stderr = self.responses.get(argv[1], (0, "", ""))
        return CommandResult(list(argv), returncode, stdout, stderr)


@pytest.fixture()
def checkout(tmp_path: Path) -> Path:
    (tmp_path / ".git").mkdir()
    return tmp_path


@pytest.mark.parametrize(
    ("argv", "expected"),
    [
        (["--update"], ["--clean"]),
        (["--update", "--clean"], ["--clean"]),
        (["--debug"], ["--debug", "--clean"]),
        ([], ["--clean"]),
    ],
)
def test_relaunch_arguments(argv: list[str], expected: list[str]) -> None:
    assert relaunch_arguments(argv) == expected


def test_check_outside_checkout(tmp_path: Path) -> None:
    git = ScriptedGit({})
    status = SelfUpdater(tmp_path, runner=git).check()
    assert status == UpdateStatus(checked=False)
    assert git.calls == []


def test_check_counts_commits_behind(checkout: Path) -> None:
    git = ScriptedGit({"rev-list": (0, "3\n", "")})
    status = SelfUpdater(checkout, runner=git).check()

    assert status.update_available
    assert status.behind == 3
    assert git.calls == [["fetch", "--quiet"], ["rev-list", "--count", "HEAD..@{u}"]]


def test_check_reports_fetch_failure(checkout: Path) -> None:
    git = ScriptedGit({"fetch": (128, "", "fatal: unable to access remote")})
    status = SelfUpdater(checkout, runner=git).check()

    assert not status.checked
    assert status.error == "fatal: unable to access remote"


def test_git_goes_through_the_command_allow_list(checkout: Path) -> None:
    runner = CommandRunner(allowed=frozenset({"php", "composer"}))

    with pytest.raises(CommandNotAllowedError):
        SelfUpdater(checkout, runner=runner).check()


def test_pull_uses_fast_forward_only(checkout: Path) -> None:
    git = ScriptedGit({"pull": (0, "", "")})
    SelfUpdater(checkout, runner=git).pull()
    assert git.calls == [["pull", "--ff-only", "--quiet"]]


class FakeUpdater:
    def __init__(self, status: UpdateStatus, pull_code: int = 0, relaunch_code: int = 0):
        self.status = status
        self.pull_code = pull_code
        self.relaunch_code = relaunch_code
        self.pulled = False
        self.relaunched_with = None

    def check(self) -> UpdateStatus:
        return self.status

    def pull(self) -> CommandResult:
        self.pulled = True
        return CommandResult(["git", "pull"], self.pull_code, "", "conflict" if self.pull_code else "")

    def relaunch(self, argv: list[str]) -> int:
        self.relaunched_with = argv
        return self.relaunch_code


def test_update_flag_pulls_and_relaunches(make_ui) -> None:
    updater = FakeUpdater(UpdateStatus(checked=True, behind=2), relaunch_code=5)

    with pytest.raises(typer.Exit) as excinfo:
        maybe_self_update(make_ui(), True, ["--update"], updater)

    assert excinfo.value.exit_code == 5
    assert updater.pulled
    assert updater.relaunched_with == ["--update"]


def test_prompted_update_can_be_declined(make_ui) -> None:
    updater = FakeUpdater(UpdateStatus(checked=True, behind=1))
    maybe_self_update(make_ui(["n"]), False, [], updater)
    assert not updater.pulled


def test_failed_pull_continues_with_warning(make_ui) -> None:
    ui = make_ui()
    updater = FakeUpdater(UpdateStatus(checked=True, behind=1), pull_code=1)

    maybe_self_update(ui, True, ["--update"], updater)

    assert updater.relaunched_with is None
    assert "Update failed: conflict" in ui.console.file.getvalue()


def test_check_error_only_warns(make_ui) -> None:
    ui = make_ui()
    maybe_self_update(ui, False, [], FakeUpdater(UpdateStatus(checked=False, error="offline")))
    assert "Could not check for updates: offline" in ui.console.file.getvalue()
