"""Shared Rich display functions for transfers and stored hosts.

Provides reusable table builders and summary printers used by the
transfer commands, the interactive shell and the bookmark commands.
"""

from rich.table import Table

from termxfer.core.bookmarks import Bookmark, RecentHost
from termxfer.core.sshkeys import StoredKey
from termxfer.explorer.state import OperationResult
from termxfer.models.transfer import TransferJob, TransferStatus
from termxfer.utils.formatting import console, format_size, print_success, print_warning

_STATUS_STYLES: dict[TransferStatus, str] = {
    TransferStatus.QUEUED: "muted",
    TransferStatus.IN_PROGRESS: "info",
    TransferStatus.COMPLETED: "success",
    TransferStatus.ABORTED: "warning",
    TransferStatus.FAILED: "error",
    TransferStatus.SKIPPED: "muted",
}


def create_jobs_table(jobs: list[TransferJob], title: str = "Transfers") -> Table:
    """Create a table summarizing transfer jobs.

    Args:
        jobs: Top-level jobs to display.
        title: Table title.

    Returns:
        Rich Table with one row per job.
    """
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", width=11)
    table.add_column("Source", no_wrap=True)
    table.add_column("Destination", no_wrap=True)
    table.add_column("Size", style="info", justify="right")
    table.add_column("Reason", style="muted")

    for job in jobs:
        style = _STATUS_STYLES[job.status]
        size = format_size(job.transferred_bytes)
        if job.total_bytes is not None:
            size = f"{size} / {format_size(job.total_bytes)}"
        table.add_row(
            f"[{style}]{job.status.value}[/]",
            job.source.path,
            job.destination,
            size,
            job.reason or "-",
        )
    return table


def print_transfer_summary(jobs: list[TransferJob]) -> None:
    """Print a transfer table followed by a one-line summary."""
    if not jobs:
        return
    console.print(create_jobs_table(jobs))
    completed = sum(1 for j in jobs if j.status == TransferStatus.COMPLETED)
    problems = [j for j in jobs if j.status in (TransferStatus.FAILED, TransferStatus.ABORTED)]
    if problems:
        print_warning(f"{completed} completed, {len(problems)} failed or aborted")
    else:
        print_success(f"{completed} of {len(jobs)} transfer(s) completed")


def print_operation_results(results: list[OperationResult], action: str) -> None:
    """Display per-path results of a file operation."""
    table = Table(title=f"{action.capitalize()} Results", show_lines=False)
    table.add_column("Path", style="bold")
    table.add_column("Status", width=10)
    table.add_column("Error", style="muted")

    for r in results:
        status = "[success]ok[/]" if r.success else "[error]failed[/]"
        table.add_row(r.path, status, r.error or "-")
    console.print(table)


def create_hosts_table(hosts: list[RecentHost], title: str) -> Table:
    """Create a table of bookmarks or recent hosts.

    Bookmarks get a name column and a marker for a saved password.
    """
    with_names = any(isinstance(h, Bookmark) for h in hosts)
    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    if with_names:
        table.add_column("Name", style="bold", no_wrap=True)
    table.add_column("Host", no_wrap=True)
    table.add_column("Directory", style="muted")
    if with_names:
        table.add_column("Password", width=8, justify="center")

    for host in hosts:
        row = [host.display, host.directory or "~"]
        if isinstance(host, Bookmark):
            row.insert(0, host.name)
            row.append("[success]saved[/]" if host.password else "-")
        table.add_row(*row)
    return table


def create_keys_table(keys: list[StoredKey]) -> Table:
    """Create a table of stored SSH keys."""
    table = Table(
        title="SSH Keys",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Host", no_wrap=True)
    table.add_column("Username")
    table.add_column("File", style="muted")
    for key in keys:
        table.add_row(key.host, key.username, str(key.path))
    return table
