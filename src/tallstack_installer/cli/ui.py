"""Terminal UI primitives for the installer wizard.

Everything the wizard shows or asks goes through :class:`TerminalUI`. When a
``stream`` is supplied (tests, piped input) answers are read line by line from
it; on an interactive terminal single-choice and multi-choice menus switch to
arrow-key selection.
"""

from __future__ import annotations

import sys
from contextlib import contextmanager
from typing import Callable, Iterator, TextIO

import readchar
import typer
from rich.align import Align
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.tree import Tree

from tallstack_installer.cli.helpers import BANNER, TAGLINE

_YES = frozenset({"y", "yes", "j", "ja"})


class StepTracker:
    """Track installation steps and render them as a Rich tree."""

    SYMBOLS = {
        "pending": "[green dim]○[/green dim]",
        "running": "[cyan]○[/cyan]",
        "done": "[green]●[/green]",
        "error": "[red]●[/red]",
        "skipped": "[yellow]○[/yellow]",
    }

    def __init__(self, title: str):
        self.title = title
        self.steps: list[dict[str, str]] = []

    def add(self, key: str, label: str) -> None:
        if key not in [s["key"] for s in self.steps]:
            self.steps.append({"key": key, "label": label, "status": "pending", "detail": ""})

    def start(self, key: str, detail: str = "") -> None:
        self._update(key, "running", detail)

    def complete(self, key: str, detail: str = "") -> None:
        self._update(key, "done", detail)

    def error(self, key: str, detail: str = "") -> None:
        self._update(key, "error", detail)

    def skip(self, key: str, detail: str = "") -> None:
        self._update(key, "skipped", detail)

    def status_of(self, key: str) -> str | None:
        for step in self.steps:
            if step["key"] == key:
                return step["status"]
        return None

    def _update(self, key: str, status: str, detail: str) -> None:
        for step in self.steps:
            if step["key"] == key:
                step["status"] = status
                if detail:
                    step["detail"] = detail
                return
        self.steps.append({"key": key, "label": key, "status": status, "detail": detail})

    def render(self) -> Tree:
        tree = Tree(f"[cyan]{self.title}[/cyan]", guide_style="grey50")
        for step in self.steps:
            symbol = self.SYMBOLS.get(step["status"], " ")
            detail = step["detail"].strip()
            if step["status"] == "pending":
                text = f"{step['label']} ({detail})" if detail else step["label"]
                tree.add(f"{symbol} [bright_black]{text}[/bright_black]")
            elif detail:
                tree.add(f"{symbol} [white]{step['label']}[/white] [bright_black]({detail})[/bright_black]")
            else:
                tree.add(f"{symbol} [white]{step['label']}[/white]")
        return tree


def get_key() -> str:
    """Get a single keypress in a cross-platform way using readchar."""
    key = readchar.readkey()

    if key in (readchar.key.UP, readchar.key.CTRL_P):
        return "up"
    if key in (readchar.key.DOWN, readchar.key.CTRL_N):
        return "down"
    if key == readchar.key.ENTER:
        return "enter"
    if key in (readchar.key.ESC, "\x1b"):
        return "escape"
    if key == readchar.key.CTRL_C:
        raise KeyboardInterrupt
    return key


def select_with_arrows(
    options: dict[str, str],
    prompt_text: str,
    default_key: str | None,
    console: Console,
) -> str:
    """Arrow-key selection over ``options`` (key -> label)."""
    option_keys = list(options.keys())
    index = option_keys.index(default_key) if default_key in option_keys else 0

    def build_panel() -> Panel:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", justify="left", width=3)
        table.add_column(style="white", justify="left")
        for i, key in enumerate(option_keys):
            pointer = "▶" if i == index else " "
            table.add_row(pointer, f"[cyan]{key}[/cyan] {options[key]}")
        table.add_row("", "")
        table.add_row("", "[dim]Use ↑/↓ to navigate, Enter to select, Esc to cancel[/dim]")
        return Panel(table, title=f"[bold]{prompt_text}[/bold]", border_style="cyan", padding=(1, 2))

    console.print()
    with Live(build_panel(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            key = get_key()
            if key == "up":
                index = (index - 1) % len(option_keys)
            elif key == "down":
                index = (index + 1) % len(option_keys)
            elif key == "enter":
                return option_keys[index]
            elif key == "escape":
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)
            live.update(build_panel(), refresh=True)


def multi_select_with_arrows(
    options: dict[str, str],
    prompt_text: str,
    default_keys: list[str],
    console: Console,
) -> list[str]:
    """Arrow keys to move, space to toggle, Enter to confirm."""
    option_keys = list(options.keys())
    selected = {option_keys.index(key) for key in default_keys if key in option_keys}
    cursor = min(selected) if selected else 0

    def build_panel() -> Panel:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", justify="left", width=3)
        table.add_column(style="white", justify="left")
        for i, key in enumerate(option_keys):
            box = "[cyan]☑" if i in selected else "[bright_black]☐"
            pointer = "▶" if i == cursor else " "
            table.add_row(pointer, f"{box} [cyan]{key}[/cyan] [dim]{options[key]}[/dim]")
        table.add_row("", "")
        table.add_row("", "[dim]Use ↑/↓ to move, Space to toggle, Enter to confirm, Esc to cancel[/dim]")
        return Panel(table, title=f"[bold]{prompt_text}[/bold]", border_style="cyan", padding=(1, 2))

    console.print()
    with Live(build_panel(), console=console, transient=True, auto_refresh=False) as live:
        while True:
            key = get_key()
            if key == "up":
                cursor = (cursor - 1) % len(option_keys)
            elif key == "down":
                cursor = (cursor + 1) % len(option_keys)
            elif key in (" ", readchar.key.SPACE):
                selected.symmetric_difference_update({cursor})
            elif key == "enter":
                return [option_keys[i] for i in sorted(selected)]
            elif key == "escape":
                console.print("\n[yellow]Selection cancelled[/yellow]")
                raise typer.Exit(1)
            live.update(build_panel(), refresh=True)


def render_progress_bar(current: int, total: int, width: int = 40) -> str:
    """``━`` for the completed share, ``░`` for the rest."""
    if total <= 0:
        return "░" * width
    filled = round(width * min(current, total) / total)
    return "━" * filled + "░" * (width - filled)


def percentage(current: int, total: int) -> int:
    if total <= 0:
        return 0
    return round(100 * min(current, total) / total)


class TerminalUI:
    """Prompts, status lines and screens used by the wizard."""

    def __init__(
        self,
        console: Console | None = None,
        stream: TextIO | None = None,
        interactive: bool | None = None,
    ):
        self.console = console or Console()
        self.stream = stream
        if interactive is None:
            interactive = stream is None and sys.stdin.isatty() and self.console.is_terminal
        self.interactive = interactive

    # -- screens -----------------------------------------------------------

    def clear(self) -> None:
        if self.interactive:
            self.console.clear()

    def banner(self) -> None:
        colors = ["bright_magenta", "magenta", "bright_blue", "blue", "cyan", "bright_cyan"]
        styled = Text()
        for i, line in enumerate(BANNER.strip("\n").split("\n")):
            styled.append(line + "\n", style=colors[i % len(colors)])
        self.console.print(Align.center(styled))
        self.console.print(Align.center(Text(TAGLINE, style="italic bright_yellow")))
        self.console.print()

    def phase_header(self, phase: int, total: int, title: str, icon: str = "") -> None:
        done = phase + 1
        bar = render_progress_bar(done, total, 30)
        heading = f"{icon}  {title}" if icon else title
        self.console.print()
        self.console.print(
            Panel(
                f"[bold white]{heading}[/bold white]\n"
                f"[magenta]{bar}[/magenta] [dim]Phase {phase} of {total - 1} · {percentage(done, total)}%[/dim]",
                border_style="magenta",
                padding=(0, 2),
            )
        )

    def section(self, title: str, icon: str = "") -> None:
        heading = f"{icon} {title}" if icon else title
        self.console.print(f"\n[bold cyan]{heading}[/bold cyan]")

    def info_box(self, title: str, lines: list[str], style: str = "cyan") -> None:
        self.console.print(Panel("\n".join(lines), title=f"[bold]{title}[/bold]", border_style=style, padding=(1, 2)))

    def success(self, message: str, duration: float | None = None) -> None:
        suffix = f" [dim]({duration:.1f}s)[/dim]" if duration is not None else ""
        self.console.print(f"[green]✓[/green] {message}{suffix}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]⚠[/yellow]  {message}")

    def info(self, message: str) -> None:
        self.console.print(f"[cyan]ℹ[/cyan]  {message}")

    def pending(self, message: str) -> None:
        self.console.print(f"[bright_black]○ {message}[/bright_black]")

    def active(self, message: str) -> None:
        self.console.print(f"[cyan]●[/cyan] {message}")

    @contextmanager
    def spinner(self, message: str) -> Iterator[None]:
        if self.interactive:
            with self.console.status(f"[cyan]{message}[/cyan]"):
                yield
        else:
            self.active(message)
            yield

    def progress(self, completed: int, total: int) -> None:
        bar = render_progress_bar(completed, total)
        self.console.print(
            f"[magenta]{bar}[/magenta] [bold]{completed}/{total}[/bold] [dim]{percentage(completed, total)}%[/dim]"
        )

    def show_options(self, options: dict[str, str], recommended: str | None = None) -> None:
        table = Table.grid(padding=(0, 2))
        table.add_column(style="cyan", justify="right")
        table.add_column(style="white")
        for key, label in options.items():
            badge = " [black on green] RECOMMENDED [/black on green]" if key == recommended else ""
            table.add_row(escape(f"[{key}]"), f"{label}{badge}")
        self.console.print(table)

    def error_screen(self, message: str, causes: list[str], actions: list[str]) -> None:
        body = [f"[bold]WHAT HAPPENED[/bold]\n  {escape(message)}"]
        if causes:
            body.append("[bold]POSSIBLE CAUSES[/bold]\n" + "\n".join(f"  • {escape(cause)}" for cause in causes))
        if actions:
            body.append("[bold]SUGGESTED ACTIONS[/bold]\n" + "\n".join(f"  → {escape(action)}" for action in actions))
        self.console.print()
        self.console.print(
            Panel("\n\n".join(body), title="[bold red]Installation Failed[/bold red]", border_style="red", padding=(1, 2))
        )

    def success_screen(
        self,
        project_name: str,
        location: str,
        features: list[str],
        next_steps: list[str],
        duration: float,
    ) -> None:
        minutes, seconds = divmod(int(duration), 60)
        lines = [
            f"[bold]Project:[/bold]  {project_name}",
            f"[bold]Location:[/bold] {location}",
            f"[bold]Time:[/bold]     {minutes}m {seconds}s",
        ]
        if features:
            lines.append("")
            lines.append("[bold]Installed features[/bold]")
            lines.extend(f"  [green]✓[/green] {feature}" for feature in features)
        if next_steps:
            lines.append("")
            lines.append("[bold]Next steps[/bold]")
            lines.extend(f"  {i}. {step}" for i, step in enumerate(next_steps, start=1))
        self.console.print()
        self.console.print(
            Panel("\n".join(lines), title="[bold green]Installation Complete[/bold green]", border_style="green", padding=(1, 2))
        )

    # -- input -------------------------------------------------------------

    def _readline(self, prompt_text: str, password: bool = False) -> str:
        if self.stream is not None:
            self.console.print(prompt_text, end="")
            line = self.stream.readline()
            if line == "":
                raise EOFError("Input stream closed")
            if password:
                self.console.print()
            return line.rstrip("\r\n")
        return self.console.input(prompt_text, password=password)

    def prompt(self, question: str, default: str | None = None, hint: str | None = None) -> str:
        """Ask a free-text question; empty input returns ``default``."""
        if hint:
            self.console.print(f"  [dim]{hint}[/dim]")
        suffix = f" [dim]{escape(f'[{default}]')}[/dim]" if default else ""
        answer = self._readline(f"[bold]?[/bold] {question}{suffix}: ").strip()
        if not answer and default is not None:
            return default
        return answer

    def prompt_validated(
        self,
        question: str,
        validator: Callable[[str], str | None],
        default: str | None = None,
        hint: str | None = None,
    ) -> str:
        """Re-prompt until ``validator`` accepts the answer."""
        while True:
            answer = self.prompt(question, default=default, hint=hint)
            problem = validator(answer)
            if problem is None:
                return answer
            self.error(problem)
            hint = None

    def prompt_password(self, question: str, hint: str | None = None) -> str:
        if hint:
            self.console.print(f"  [dim]{hint}[/dim]")
        return self._readline(f"[bold]?[/bold] {question}: ", password=True).strip()

    def confirm(self, question: str, default: bool = True) -> bool:
        """Yes/no question; accepts y/yes/j/ja, empty input returns ``default``."""
        choices = "Y/n" if default else "y/N"
        answer = self._readline(f"[bold]?[/bold] {question} [dim]({choices})[/dim]: ").strip().lower()
        if not answer:
            return default
        return answer in _YES

    def select(
        self,
        question: str,
        options: dict[str, str],
        default: str,
        recommended: str | None = None,
    ) -> str:
        """Pick one key of ``options``; unknown input resolves to ``default``."""
        if self.interactive:
            return select_with_arrows(options, question, default, self.console)
        self.console.print(f"\n[bold]?[/bold] {question}")
        self.show_options(options, recommended)
        answer = self._readline(f"  Choice [dim]{escape(f'[{default}]')}[/dim]: ").strip()
        return answer if answer in options else default

    def multi_select(self, question: str, options: dict[str, str], default: list[str]) -> list[str]:
        """Pick any keys of ``options``; unknown numbers are ignored."""
        if self.interactive:
            return multi_select_with_arrows(options, question, default, self.console)
        self.console.print(f"\n[bold]?[/bold] {question}")
        self.show_options(options)
        default_text = ",".join(default)
        answer = self._readline(f"  Comma-separated numbers [dim]{escape(f'[{default_text}]')}[/dim]: ").strip()
        if not answer:
            return list(default)
        return [key for key in dict.fromkeys(part.strip() for part in answer.split(",")) if key in options]

    def prompt_multiline(self, question: str, hint: str | None = None) -> str:
        """Collect lines until two consecutive empty lines or end of input."""
        self.console.print(f"[bold]?[/bold] {question}")
        self.console.print(f"  [dim]{hint or 'Press Enter twice to finish'}[/dim]")
        lines: list[str] = []
        empty_run = 0
        while True:
            try:
                line = self._readline("  ")
            except EOFError:
                break
            if line.strip() == "":
                empty_run += 1
                if empty_run >= 2:
                    break
            else:
                empty_run = 0
            lines.append(line)
        return "\n".join(lines).strip()


__all__ = [
    "StepTracker",
    "TerminalUI",
    "get_key",
    "select_with_arrows",
    "multi_select_with_arrows",
    "render_progress_bar",
    "percentage",
]
