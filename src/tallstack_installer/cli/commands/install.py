"""The default command: self-update check followed by the wizard."""

from __future__ import annotations

import logging
import platform
import sys
from typing import Callable

import typer
from rich.console import Console

from tallstack_installer import __version__
from tallstack_installer.cli.ui import TerminalUI
from tallstack_installer.core.preferences import load_preferences
from tallstack_installer.exceptions import PreferencesError
from tallstack_installer.update.checker import SelfUpdater
from tallstack_installer.wizard.orchestrator import InstallerWizard

logger = logging.getLogger(__name__)


def version_text(updater: SelfUpdater | None = None) -> str:
    updater = updater or SelfUpdater()
    lines = [f"tallstack-installer {__version__}"]
    commit = updater.current_commit()
    if commit:
        lines.append(f"commit {commit}")
    lines.append(f"Python {platform.python_version()} on {platform.system()}")
    return "\n".join(lines)


def maybe_self_update(ui: TerminalUI, update: bool, argv: list[str], updater: SelfUpdater) -> None:
    """Offer (or, with ``--update``, apply) a newer installer version.

    On a successful pull the updated installer is re-run and this process
    exits with its code.
    """
    with ui.spinner("Checking for installer updates..."):
        status = updater.check()

    if not status.checked:
        if status.error:
            ui.warning(f"Could not check for updates: {status.error}")
        elif update:
            ui.warning("--update needs a git checkout of the installer; continuing with this version")
        return
    if not status.update_available:
        if update:
            ui.info("Installer is already up to date")
        return

    ui.info(f"A newer installer version is available ({status.behind} commit(s) behind)")
    if not update and not ui.confirm("Update now?", default=True):
        return

    pulled = updater.pull()
    if pulled.returncode != 0:
        ui.warning(f"Update failed: {pulled.stderr.strip() or 'git pull failed'}. Continuing with the current version")
        return

    ui.success("Installer updated, restarting")
    raise typer.Exit(updater.relaunch(argv))


def run_installer(
    *,
    console: Console,
    clean: bool = False,
    update: bool = False,
    check_updates: bool = True,
    argv: list[str] | None = None,
    updater: SelfUpdater | None = None,
    wizard_factory: Callable[..., InstallerWizard] = InstallerWizard,
) -> None:
    ui = TerminalUI(console=console)
    try:
        preferences = load_preferences()
    except PreferencesError as exc:
        ui.error_screen(exc.message, exc.causes, exc.actions)
        raise typer.Exit(1) from exc

    if update or (check_updates and preferences.update_check):
        maybe_self_update(ui, update, list(sys.argv[1:] if argv is None else argv), updater or SelfUpdater())

    wizard = wizard_factory(ui, clean=clean or update, preferences=preferences)
    raise typer.Exit(wizard.run())


__all__ = ["run_installer", "maybe_self_update", "version_text"]
