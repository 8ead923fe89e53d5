"""Shared CLI objects: console, banner text and logging setup."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from typer.core import TyperGroup

BANNER = r"""
 _____  _    _     _       ____  _             _
|_   _|/ \  | |   | |     / ___|| |_ __ _  ___| | __
  | | / _ \ | |   | |     \___ \| __/ _` |/ __| |/ /
  | |/ ___ \| |___| |___   ___) | || (_| | (__|   <
  |_/_/   \_\_____|_____| |____/ \__\__,_|\___|_|\_\
"""

TAGLINE = "TALL Stack SaaS Installer - Laravel, Jetstream, Livewire, Filament"

console = Console()


def configure_logging(debug: bool = False) -> None:
    """Send log records to stderr so they never interleave with wizard output."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(name)s: %(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=debug, rich_tracebacks=debug)],
        force=True,
    )


class BannerGroup(TyperGroup):
    """Custom group that shows the banner before help."""

    def format_help(self, ctx, formatter):
        from tallstack_installer.cli.ui import TerminalUI

        TerminalUI(console=console, interactive=False).banner()
        super().format_help(ctx, formatter)


__all__ = ["BANNER", "TAGLINE", "console", "configure_logging", "BannerGroup"]
