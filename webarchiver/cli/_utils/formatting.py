"""Formatting utilities for CLI output using Rich."""

from typing import Any

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn, TimeRemainingColumn

# Shared console instance for consistent output
console = Console()


def print_stats(stats: dict[str, Any], title: str = "Statistics") -> None:
    """Print statistics in a nicely formatted panel.

    Args:
        stats: Dictionary of stat names to values.
        title: Title for the panel.
    """
    lines = [f"[bold]{key}:[/bold] {value}" for key, value in stats.items()]
    content = "\n".join(lines)
    console.print(Panel(content, title=title))


def print_error(msg: str) -> None:
    """Print an error message in red."""
    console.print(f"[bold red]Error:[/bold red] {msg}")


def print_success(msg: str) -> None:
    """Print a success message in green."""
    console.print(f"[bold green]Success:[/bold green] {msg}")


def print_warning(msg: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {msg}")


def format_bytes(num_bytes: int) -> str:
    """Format a byte count as a human-readable string.

    Args:
        num_bytes: Number of bytes to format. Negative counts keep their sign.

    Returns:
        A string like "1.2 MB", "500 KB", "256 B", "-3.0 KB".
    """
    if num_bytes < 0:
        return "-" + format_bytes(-num_bytes)

    units = [("GB", 1024**3), ("MB", 1024**2), ("KB", 1024), ("B", 1)]

    for unit, threshold in units:
        if num_bytes >= threshold:
            value = num_bytes / threshold
            if value >= 10 or unit == "B":
                return f"{value:.0f} {unit}"
            return f"{value:.1f} {unit}"

    return "0 B"


def archive_progress() -> Progress:
    """Progress bar used while archiving."""
    return Progress(
        TextColumn("  Archiving"),
        BarColumn(bar_width=50),
        TaskProgressColumn(),
        TextColumn("{task.description}"),
        TimeRemainingColumn(),
        console=console,
        transient=True,
    )
