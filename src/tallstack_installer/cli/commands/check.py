"""``check`` command: report which external tools are available."""

from __future__ import annotations

import importlib.util

import typer
from rich.console import Console

from tallstack_installer.cli.ui import StepTracker
from tallstack_installer.core.commands import command_exists

REQUIRED_TOOLS = {
    "php": "PHP runtime",
    "composer": "Composer",
    "node": "Node.js",
    "npm": "npm",
}
OPTIONAL_TOOLS = {
    "git": "Git (self-update)",
    "claude": "Claude Code CLI (AI landing page)",
}
DATABASE_DRIVERS = {
    "pymysql": "MySQL driver (PyMySQL)",
    "psycopg2": "PostgreSQL driver (psycopg2)",
}


def register_check_command(app: typer.Typer, *, console: Console) -> None:
    @app.command()
    def check() -> None:
        """Check that the tools the installer needs are installed."""
        tracker = StepTracker("Installer Requirements")
        missing_required = []

        for tool, label in REQUIRED_TOOLS.items():
            tracker.add(tool, label)
            if command_exists(tool):
                tracker.complete(tool, "available")
            else:
                tracker.error(tool, "not found")
                missing_required.append(tool)

        for tool, label in OPTIONAL_TOOLS.items():
            tracker.add(tool, label)
            if command_exists(tool):
                tracker.complete(tool, "available")
            else:
                tracker.skip(tool, "optional, not found")

        for module, label in DATABASE_DRIVERS.items():
            tracker.add(module, label)
            if importlib.util.find_spec(module) is not None:
                tracker.complete(module, "installed")
            else:
                tracker.skip(module, "needed only for this database")

        console.print(tracker.render())

        if missing_required:
            console.print(f"\n[red]Missing required tools:[/red] {', '.join(missing_required)}")
            raise typer.Exit(1)
        console.print("\n[bold green]Everything needed for installation is available.[/bold green]")
