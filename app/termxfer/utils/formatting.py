"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from termxfer.core.theme import get_theme

if TYPE_CHECKING:
    from termxfer.explorer.pane import PaneState
    from termxfer.models.entry import FileEntry


def _detect_color_system() -> str | None:
    """Detect the best color system for the current terminal.

    Returns "truecolor" for interactive terminals to enable full hex color support,
    None otherwise to let Rich auto-detect.
    """
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def entry_style(entry: FileEntry) -> str:
    """Return the theme style for an entry's kind."""
    if entry.is_dir:
        return "entry.directory"
    if entry.is_symlink:
        return "entry.symlink"
    return "entry.file"


def create_pane_table(pane: PaneState, title: str, style: str) -> Table:
    """Create a table showing a pane's rendered listing.

    Rows come from the pane's formatter so the table mirrors the user's
    row template; selected entries are marked and highlighted.

    Args:
        pane: Pane to render.
        title: Table title, usually the pane's directory.
        style: Title style (``pane.local`` or ``pane.remote``).

    Returns:
        Rich Table with one row per visible entry.
    """
    table = Table(
        title=f"[{style}]{title}[/]",
        show_header=False,
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("", width=2, justify="center")
    table.add_column("Entry", no_wrap=True, overflow="crop")
    for entry, row in zip(pane.listing, pane.render(), strict=True):
        selected = entry.path in pane.selection
        marker = "[entry.selected]*[/]" if selected else ""
        row_style = "entry.selected" if selected else entry_style(entry)
        table.add_row(marker, f"[{row_style}]{escape(row)}[/]")
    return table


def format_size(size_bytes: int | None) -> str:
    """Format byte count as human-readable string."""
    if size_bytes is None:
        return "-"
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(size) < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{size:.1f} TB"


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
