#!/usr/bin/env python3
"""
Console UI Module using Rich

Styled output, prompts, live traversal progress and log routing for skoria.
Everything user-facing goes through one Console so progress lines, log
records and prompts never tear each other apart.
"""

import logging
from typing import Callable, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    ProgressColumn,
    SpinnerColumn,
    Task,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.prompt import Confirm
from rich.text import Text


class DirectoryCountColumn(ProgressColumn):
    """Renders 'Checked N directories...' from a live counter on every refresh"""

    def __init__(self, count: Callable[[], int]):
        super().__init__()
        self._count = count

    def render(self, task: Task) -> Text:
        return Text(f"Checked {self._count():,} directories...", style="white dim")


class ConsoleUI:
    """Console UI handler using Rich"""

    def __init__(self, force_terminal: Optional[bool] = None, console: Optional[Console] = None):
        """Initialize console with optional terminal forcing"""
        self.console = console if console is not None else Console(force_terminal=force_terminal, highlight=False)

    def print_success(self, message: str):
        """Print success message in green"""
        self.console.print(message, style="green")

    def print_error(self, message: str):
        """Print error message in red"""
        self.console.print(message, style="red bold")

    def print_warning(self, message: str):
        """Print warning message in yellow"""
        self.console.print(message, style="yellow")

    def print_info(self, message: str):
        """Print info message in cyan"""
        self.console.print(message, style="cyan")

    def print_progress(self, message: str):
        """Print progress message in dim white"""
        self.console.print(message, style="white dim")

    def print_plain(self, message: str):
        self.console.print(message, style="white")

    def print_header(self, title: str, subtitle: Optional[str] = None):
        """Print a header with optional subtitle"""
        if subtitle:
            header_text = f"[bold]{title}[/bold]\n[dim]{subtitle}[/dim]"
        else:
            header_text = f"[bold]{title}[/bold]"
        self.console.print(Panel(header_text, box=box.ROUNDED, padding=(0, 1)))

    def create_traversal_progress(self, count: Callable[[], int]) -> Progress:
        """Live activity line for a running traversal (no total is known up front)"""
        return Progress(
            SpinnerColumn(),
            DirectoryCountColumn(count),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
            refresh_per_second=20,
        )

    def create_progress(self) -> Progress:
        """Progress bar for batch operations with a known total"""
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("({task.completed}/{task.total})"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )

    def show_operation_summary(self, successful: int, failed: list[tuple[str, str]], operation_name: str):
        """Show summary of completed operations"""
        if successful:
            self.print_success(f"Managed to {operation_name} {successful} directories")
        if failed:
            self.print_error(f"Failed to {operation_name} {len(failed)} directories:")
            for path, error in failed:
                self.console.print(f"[red dim]  • {path}: {error}[/red dim]")

    def confirm(self, question: str, default: bool = False) -> bool:
        """Ask for yes/no confirmation"""
        return Confirm.ask(question, default=default, console=self.console)


def setup_logging(console: Console, verbose: bool = False) -> logging.Handler:
    """Route log records through *console* so they interleave cleanly with live progress"""
    handler = RichHandler(console=console, show_path=verbose, markup=False, rich_tracebacks=True)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing, RichHandler):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.WARNING)
    return handler
