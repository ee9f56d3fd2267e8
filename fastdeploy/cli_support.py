"""Shared utilities for the FastDeploy CLI."""
from __future__ import annotations

import os

from rich.console import Console
from rich.markup import escape

from fastdeploy.core.errors import CommandError, DeployError


def is_root() -> bool:
    """Return True when running with root privileges."""
    return os.geteuid() == 0


def report_error(console: Console, err: DeployError, tail_lines: int = 20) -> None:
    """Print a fatal error, plus the failing command and its output tail.

    Args:
        console: Rich console for output
        err: Error that ends the run
        tail_lines: Lines of captured output to show
    """
    print_error(console, f"ERROR: {escape(str(err))}")
    if isinstance(err, CommandError):
        console.print(f"[red]Command executed:[/red] {escape(err.command_line)}")
        tail = err.tail(tail_lines)
        if tail:
            console.print(f"[yellow]Output from command (last {tail_lines} lines):[/yellow]")
            for line in tail:
                console.print(escape(line), highlight=False)
        if err.hint:
            console.print(f"[yellow]{escape(err.hint)}[/yellow]")


def print_success(console: Console, message: str, prefix: str = "✓") -> None:
    """Print success message with consistent formatting.

    Args:
        console: Rich console for output
        message: Success message
        prefix: Prefix symbol (default: ✓)
    """
    console.print(f"[green]{prefix}[/green] {message}")


def print_error(console: Console, message: str, prefix: str = "✗") -> None:
    """Print error message with consistent formatting.

    Args:
        console: Rich console for output
        message: Error message
        prefix: Prefix symbol (default: ✗)
    """
    console.print(f"[red]{prefix}[/red] {message}")


def print_warning(console: Console, message: str, prefix: str = "⚠") -> None:
    """Print warning message with consistent formatting."""
    console.print(f"[yellow]{prefix}[/yellow] {message}")


def print_info(console: Console, message: str, prefix: str = "ℹ") -> None:
    """Print info message with consistent formatting."""
    console.print(f"[cyan]{prefix}[/cyan] {message}")
