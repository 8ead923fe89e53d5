"""Installer self-update."""

from .checker import SelfUpdater, UpdateStatus, relaunch_arguments

__all__ = ["SelfUpdater", "UpdateStatus", "relaunch_arguments"]
