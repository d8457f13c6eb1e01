"""One-shot remote commands.

Provides ``ls``, ``get`` and ``put``: each connects, performs a single
listing or transfer with a progress display, and disconnects.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Annotated

import typer

from termxfer.cli.display import print_transfer_summary
from termxfer.cli.progress import ConflictPolicy, run_transfers
from termxfer.cli.session import (
    build_explorer,
    open_bookmark_store,
    open_session,
    require_config,
    resolve_params,
)
from termxfer.explorer.state import Explorer
from termxfer.filetransfer.errors import TermxferError
from termxfer.models.transfer import EndpointKind, TransferStatus
from termxfer.utils.formatting import console, create_pane_table, print_error

AddressArg = Annotated[
    str | None,
    typer.Argument(help="[protocol://][user@]host[:port][:directory]", show_default=False),
]
BookmarkOpt = Annotated[
    str | None,
    typer.Option("--bookmark", "-b", help="Connect using a saved bookmark."),
]
PasswordOpt = Annotated[
    str | None,
    typer.Option("--password", "-p", help="Password or key passphrase."),
]
ConflictOpt = Annotated[
    ConflictPolicy,
    typer.Option(
        "--on-conflict",
        help="What to do when the destination exists.",
        case_sensitive=False,
    ),
]


@contextmanager
def _remote_explorer(
    address: str | None,
    bookmark: str | None,
    password: str | None,
) -> Iterator[Explorer]:
    """Yield an explorer connected to the remote host, then disconnect.

    Raises:
        typer.Exit: With code 1 if the connection fails.
    """
    config = require_config()
    store = open_bookmark_store()
    params = resolve_params(config, store, address, bookmark, password)
    explorer = build_explorer(config)
    try:
        try:
            open_session(explorer, params, store)
        except TermxferError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        yield explorer
    finally:
        explorer.close_remote()


def _shift_arguments(
    bookmark: str | None,
    address: str | None,
    *rest: str | None,
) -> tuple[str | None, ...]:
    """Reinterpret positional arguments when a bookmark replaces the address.

    With ``--bookmark`` the first positional argument is the first
    operand, not an address.
    """
    if bookmark is None or address is None:
        return (address, *rest)
    return (None, address, *rest[:-1])


def _finish(explorer: Explorer, policy: ConflictPolicy) -> None:
    try:
        jobs = run_transfers(explorer, policy)
    except TermxferError as e:
        print_transfer_summary(explorer.queue.jobs())
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_transfer_summary(jobs)
    if any(job.status in (TransferStatus.FAILED, TransferStatus.ABORTED) for job in jobs):
        raise typer.Exit(code=1)


def ls(
    address: AddressArg = None,
    path: Annotated[str | None, typer.Argument(help="Remote directory to list.")] = None,
    bookmark: BookmarkOpt = None,
    password: PasswordOpt = None,
    show_all: Annotated[
        bool,
        typer.Option("--all", "-a", help="Include hidden entries."),
    ] = False,
) -> None:
    """List a remote directory."""
    address, path = _shift_arguments(bookmark, address, path)
    with _remote_explorer(address, bookmark, password) as explorer:
        try:
            if path:
                explorer.navigate_to(path)
            pane = explorer.focused
            if show_all != pane.show_hidden:
                explorer.toggle_hidden()
        except TermxferError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        console.print(create_pane_table(pane, pane.cwd, "pane.remote"))


def get(
    address: AddressArg = None,
    remote_path: Annotated[str, typer.Argument(help="Remote file or directory.")] = ".",
    local_dir: Annotated[
        str | None,
        typer.Argument(help="Local destination directory (default: current directory)."),
    ] = None,
    bookmark: BookmarkOpt = None,
    password: PasswordOpt = None,
    on_conflict: ConflictOpt = ConflictPolicy.ASK,
) -> None:
    """Download a remote file or directory."""
    address, remote_path, local_dir = _shift_arguments(bookmark, address, remote_path, local_dir)
    with _remote_explorer(address, bookmark, password) as explorer:
        try:
            if local_dir:
                explorer.switch_focus(EndpointKind.LOCAL)
                explorer.navigate_to(local_dir)
            explorer.switch_focus(EndpointKind.REMOTE)
            entry = explorer.remote.stat(explorer.remote.absolute(remote_path))
            explorer.enqueue_transfer([entry])
        except TermxferError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        _finish(explorer, on_conflict)


def put(
    address: AddressArg = None,
    local_path: Annotated[str, typer.Argument(help="Local file or directory.")] = ".",
    remote_dir: Annotated[
        str | None,
        typer.Argument(help="Remote destination directory (default: remote working directory)."),
    ] = None,
    bookmark: BookmarkOpt = None,
    password: PasswordOpt = None,
    on_conflict: ConflictOpt = ConflictPolicy.ASK,
) -> None:
    """Upload a local file or directory."""
    address, local_path, remote_dir = _shift_arguments(bookmark, address, local_path, remote_dir)
    with _remote_explorer(address, bookmark, password) as explorer:
        try:
            if remote_dir:
                explorer.navigate_to(remote_dir)
            explorer.switch_focus(EndpointKind.LOCAL)
            local = explorer.local_pane.fs
            entry = local.stat(local.absolute(local_path))
            explorer.enqueue_transfer([entry])
        except TermxferError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        _finish(explorer, on_conflict)
