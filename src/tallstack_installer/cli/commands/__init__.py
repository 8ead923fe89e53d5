"""Command registration for the installer CLI."""

from __future__ import annotations

import typer
from rich.console import Console

from .check import register_check_command


def register_commands(app: typer.Typer, *, console: Console) -> None:
    register_check_command(app, console=console)


__all__ = ["register_commands"]
