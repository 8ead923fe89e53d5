"""CLI helpers for the TALL Stack installer."""

from .helpers import BannerGroup, configure_logging, console
from .ui import StepTracker, TerminalUI, multi_select_with_arrows, select_with_arrows

__all__ = [
    "BannerGroup",
    "configure_logging",
    "console",
    "StepTracker",
    "TerminalUI",
    "select_with_arrows",
    "multi_select_with_arrows",
]
