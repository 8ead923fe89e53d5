"""Interactive setup wizard."""

from .orchestrator import InstallerWizard
from .phases import Phase, build_phases

__all__ = ["InstallerWizard", "Phase", "build_phases"]
