"""Typer application and top-level flags."""

from __future__ import annotations

import typer

from tallstack_installer.cli.commands import register_commands
from tallstack_installer.cli.commands.install import run_installer, version_text
from tallstack_installer.cli.helpers import BannerGroup, configure_logging, console

app = typer.Typer(
    name="tallstack-install",
    help="Interactive installer for Laravel TALL Stack SaaS projects",
    add_completion=False,
    invoke_without_command=True,
    cls=BannerGroup,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(version_text())
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    clean: bool = typer.Option(
        False, "--clean", help="Back up or delete an existing project directory instead of failing"
    ),
    update: bool = typer.Option(
        False, "--update", help="Pull the latest installer before running (implies --clean)"
    ),
    no_update_check: bool = typer.Option(
        False, "--no-update-check", help="Skip the check for a newer installer version"
    ),
    debug: bool = typer.Option(False, "--debug", help="Show debug logging on stderr"),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_version_callback,
        is_eager=True,
        help="Show version information and exit",
    ),
) -> None:
    """Run the setup wizard when no subcommand is given."""
    configure_logging(debug)
    if ctx.invoked_subcommand is not None:
        return
    run_installer(
        console=console,
        clean=clean,
        update=update,
        check_updates=not no_update_check,
    )


register_commands(app, console=console)


__all__ = ["app"]
