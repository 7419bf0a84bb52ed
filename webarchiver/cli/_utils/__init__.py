"""CLI utilities for formatting."""

from .formatting import (
    archive_progress,
    console,
    format_bytes,
    print_error,
    print_stats,
    print_success,
    print_warning,
)

__all__ = [
    "archive_progress",
    "console",
    "print_stats",
    "print_error",
    "print_success",
    "print_warning",
    "format_bytes",
]
