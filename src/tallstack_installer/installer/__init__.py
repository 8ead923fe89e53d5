"""Project installation: directory preparation, stubs and the step runner."""

from .operations import build_install_steps
from .project_dir import ConflictResolution, prepare_project_directory
from .steps import InstallContext, InstallReport, InstallStep, StepOutcome, StepRunner
from .templates import render_template, write_stub

__all__ = [
    "build_install_steps",
    "ConflictResolution",
    "prepare_project_directory",
    "InstallContext",
    "InstallReport",
    "InstallStep",
    "StepOutcome",
    "StepRunner",
    "render_template",
    "write_stub",
]
