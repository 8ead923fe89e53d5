from __future__ import annotations

import io
from pathlib import Path
from typing import Callable

import pytest
from rich.console import Console

from tallstack_installer.cli.ui import TerminalUI


@pytest.fixture(autouse=True)
def installer_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Keep preferences and secrets out of the real home directory."""
    home = tmp_path / "installer-home"
    monkeypatch.setenv("TALLSTACK_HOME", str(home))
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    return home


@pytest.fixture()
def make_ui() -> Callable[..., TerminalUI]:
    """Build a non-interactive UI that reads scripted answers line by line."""

    def factory(answers: list[str] | None = None) -> TerminalUI:
        stream = io.StringIO("".join(f"{line}\n" for line in (answers or [])))
        console = Console(file=io.StringIO(), force_terminal=False, width=120)
        return TerminalUI(console=console, stream=stream, interactive=False)

    return factory
