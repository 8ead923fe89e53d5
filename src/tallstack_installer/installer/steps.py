"""Sequential installation step runner.

Each step is timed and its outcome recorded. An ordinary failure is reported
and the run moves on to the next step; a failure in a step marked
``critical`` is recorded and then re-raised, which aborts the remaining steps.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable

from rich.markup import escape
from rich.tree import Tree

from tallstack_installer.cli.ui import StepTracker

if TYPE_CHECKING:
    from tallstack_installer.cli.ui import TerminalUI
    from tallstack_installer.core.commands import CommandRunner
    from tallstack_installer.core.preferences import InstallerPreferences
    from tallstack_installer.core.settings import InstallerConfig
    from tallstack_installer.generation.coordinator import GenerationCoordinator

logger = logging.getLogger(__name__)


@dataclass
class InstallContext:
    """Read-only view of everything a step operation may use."""

    config: "InstallerConfig"
    project_path: Path
    runner: "CommandRunner"
    ui: "TerminalUI"
    preferences: "InstallerPreferences"
    coordinator: "GenerationCoordinator | None" = None
    stub_root: Path | None = None
    # values handed to child processes only, never written to disk
    process_env: dict[str, str] = field(default_factory=dict)


Operation = Callable[[InstallContext], "str | None"]


@dataclass
class InstallStep:
    key: str
    label: str
    operation: Operation
    critical: bool = False


@dataclass
class StepOutcome:
    key: str
    label: str
    status: str
    duration: float
    detail: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "done"

    def to_dict(self) -> dict[str, object]:
        return {
            "key": self.key,
            "label": self.label,
            "status": self.status,
            "duration": round(self.duration, 2),
            "detail": self.detail,
            "error": self.error,
        }


@dataclass
class InstallReport:
    outcomes: list[StepOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[StepOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def succeeded(self) -> list[StepOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def total_duration(self) -> float:
        return sum(outcome.duration for outcome in self.outcomes)

    def summary_tree(self, title: str = "Installation Summary") -> Tree:
        tracker = StepTracker(title)
        for outcome in self.outcomes:
            tracker.add(outcome.key, outcome.label)
            if outcome.ok:
                tracker.complete(outcome.key, outcome.detail or f"{outcome.duration:.1f}s")
            else:
                tracker.error(outcome.key, escape(outcome.error or "failed"))
        return tracker.render()


class StepRunner:
    """Run steps in order, reporting progress through the UI after each one."""

    def __init__(self, ui: "TerminalUI", clock: Callable[[], float] = time.perf_counter):
        self.ui = ui
        self._clock = clock

    def run(self, steps: list[InstallStep], context: InstallContext) -> InstallReport:
        report = InstallReport()
        total = len(steps)
        for index, step in enumerate(steps, start=1):
            self.ui.active(f"[{index}/{total}] {step.label}...")
            started = self._clock()
            try:
                detail = step.operation(context) or ""
            except Exception as exc:
                duration = self._clock() - started
                message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
                logger.debug("Step %s failed", step.key, exc_info=True)
                report.outcomes.append(
                    StepOutcome(step.key, step.label, "error", duration, error=message)
                )
                self.ui.error(f"{step.label} failed: {escape(message)}")
                self.ui.progress(index, total)
                if step.critical:
                    raise
                continue

            duration = self._clock() - started
            report.outcomes.append(StepOutcome(step.key, step.label, "done", duration, detail=detail))
            self.ui.success(step.label, duration)
            self.ui.progress(index, total)
        return report


__all__ = [
    "InstallContext",
    "InstallStep",
    "StepOutcome",
    "InstallReport",
    "StepRunner",
]
