"""Wizard state machine: phases, confirmation, installation and summary."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Callable

import typer

from tallstack_installer.cli.ui import TerminalUI
from tallstack_installer.core.commands import CommandRunner, command_exists
from tallstack_installer.core.constants import OTP_TEST_CODE, TOTAL_PHASES
from tallstack_installer.core.home import get_stub_root
from tallstack_installer.core.preferences import InstallerPreferences
from tallstack_installer.core.secrets import SecretStore
from tallstack_installer.core.settings import InstallerConfig
from tallstack_installer.database.probe import DatabaseProbe
from tallstack_installer.exceptions import InstallationAborted, InstallerError
from tallstack_installer.generation.coordinator import GenerationCoordinator
from tallstack_installer.installer.operations import build_install_steps
from tallstack_installer.installer.steps import InstallContext, InstallReport, InstallStep, StepRunner
from tallstack_installer.wizard.phases import Phase, build_phases

logger = logging.getLogger(__name__)

UNEXPECTED_ERROR_CAUSES = ["An unexpected error occurred during installation"]
UNEXPECTED_ERROR_ACTIONS = [
    "Re-run the installer with --debug for a full traceback",
    "Check that composer, php and npm are installed and on PATH",
]


class InstallerWizard:
    """Drives the phases in order, then hands the configuration to the step runner.

    Collaborators are injectable so the whole flow can run against scripted
    input and fake steps.
    """

    def __init__(
        self,
        ui: TerminalUI,
        *,
        clean: bool = False,
        cwd: Path | None = None,
        preferences: InstallerPreferences | None = None,
        secrets: SecretStore | None = None,
        probe: DatabaseProbe | None = None,
        runner: CommandRunner | None = None,
        phases: list[Phase] | None = None,
        steps: list[InstallStep] | None = None,
        detect_claude: Callable[[], bool] | None = None,
        coordinator_options: dict[str, Any] | None = None,
        stub_root: Path | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ui = ui
        self.clean = clean
        self.cwd = Path(cwd or Path.cwd())
        self.preferences = preferences or InstallerPreferences()
        self.secrets = secrets or SecretStore()
        self.probe = probe or DatabaseProbe(connect_timeout=self.preferences.db_connect_timeout_seconds)
        self.runner = runner or CommandRunner()
        self.phases = phases if phases is not None else build_phases()
        self.steps = steps
        self.detect_claude = detect_claude or (lambda: command_exists("claude"))
        self.coordinator_options = coordinator_options or {}
        self.stub_root = stub_root
        self._clock = clock

        self.config = InstallerConfig()
        self.coordinator: GenerationCoordinator | None = None
        self.process_env: dict[str, str] = {}
        self.report: InstallReport | None = None

    @property
    def project_path(self) -> Path:
        return Path(self.config.require("project_path"))

    def run(self) -> int:
        """Run the whole wizard and return the process exit code."""
        started = self._clock()
        try:
            self.ui.clear()
            self.ui.banner()
            for phase in self.phases:
                self.run_phase(phase)
            self.confirm_installation()
            self.report = self.install()
            self.show_completion(self._clock() - started)
            return 0
        except typer.Exit:
            raise
        except InstallationAborted as exc:
            if exc.exit_code == 0:
                self.ui.info(exc.message)
            else:
                self.ui.error_screen(exc.message, exc.causes, exc.actions)
            return exc.exit_code
        except InstallerError as exc:
            logger.debug("Installation failed", exc_info=True)
            self.ui.error_screen(
                exc.message,
                exc.causes or UNEXPECTED_ERROR_CAUSES,
                exc.actions or UNEXPECTED_ERROR_ACTIONS,
            )
            return 1
        except Exception as exc:
            logger.debug("Unexpected installer failure", exc_info=True)
            self.ui.error_screen(str(exc) or exc.__class__.__name__, UNEXPECTED_ERROR_CAUSES, UNEXPECTED_ERROR_ACTIONS)
            return 1
        finally:
            if self.coordinator is not None:
                self.coordinator.cleanup()

    def run_phase(self, phase: Phase) -> None:
        if phase.condition is not None and not phase.condition(self):
            for key, value in phase.skip_values.items():
                self.config.set(key, value)
            logger.debug("Skipping phase %d (%s)", phase.number, phase.skip_reason)
            self.ui.info(f"Skipping {phase.title}: {phase.skip_reason}")
            return
        self.ui.phase_header(phase.number, TOTAL_PHASES, phase.title, phase.icon)
        phase.handler(self)

    def summary_lines(self) -> list[str]:
        config = self.config
        lines = [
            f"[bold]Project:[/bold]   {config.get('app_name')} ({config.get('project_name')})",
            f"[bold]Location:[/bold]  {config.get('project_path')}",
            f"[bold]Database:[/bold]  {config.get('database_driver')}"
            + ("" if config.get("database_validated", True) else " [yellow](unverified)[/yellow]"),
            f"[bold]Auth:[/bold]      {config.get('auth_strategy')}",
            f"[bold]Payments:[/bold]  {config.get('payment_provider') or 'none'}",
            f"[bold]Filament:[/bold]  {'yes' if config.get('filament') else 'no'}",
            f"[bold]Landing:[/bold]   {'AI generated' if config.get('landing_page') else 'framework default'}",
        ]
        if config.get("directory_resolution"):
            lines.append(f"[bold]Existing directory:[/bold] {config.get('directory_resolution')}")
        return lines

    def confirm_installation(self) -> None:
        self.ui.info_box("Ready to install", self.summary_lines())
        if not self.ui.confirm("Start installation?", default=True):
            raise InstallationAborted("Installation cancelled; nothing was changed", exit_code=0)

    def install(self) -> InstallReport:
        context = InstallContext(
            config=self.config,
            project_path=self.project_path,
            runner=self.runner,
            ui=self.ui,
            preferences=self.preferences,
            coordinator=self.coordinator,
            stub_root=self.stub_root or get_stub_root(),
            process_env=dict(self.process_env),
        )
        steps = self.steps if self.steps is not None else build_install_steps()
        self.ui.section("Installing", "🚀")
        report = StepRunner(self.ui).run(steps, context)
        self.ui.console.print()
        self.ui.console.print(report.summary_tree())
        return report

    def next_steps(self) -> list[str]:
        config = self.config
        steps = [
            f"cd {config.require('project_name')}",
            "composer dev",
            "Open http://localhost:8000",
        ]
        if config.get("filament"):
            steps.append(f"Admin panel: http://localhost:8000/{config.get('filament_panel_name', 'admin')}")
        if config.get("auth_strategy") != "password_socialite":
            steps.append(f"Local OTP login code: {OTP_TEST_CODE}")
        return steps

    def show_completion(self, duration: float) -> None:
        report = self.report or InstallReport()
        if report.failed:
            self.ui.warning(
                f"{len(report.failed)} of {len(report.outcomes)} steps failed; "
                "review the summary above and finish those steps manually"
            )
        self.ui.success_screen(
            project_name=self.config.require("app_name"),
            location=str(self.project_path),
            features=self.config.features,
            next_steps=self.next_steps(),
            duration=duration,
        )


__all__ = ["InstallerWizard"]
