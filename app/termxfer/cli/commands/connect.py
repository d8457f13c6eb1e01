"""Connect command implementation.

Opens a session and starts the interactive explorer shell.
"""

from typing import Annotated

import typer

from termxfer.cli.progress import ConflictPolicy
from termxfer.cli.session import (
    build_explorer,
    open_bookmark_store,
    open_session,
    require_config,
    resolve_params,
)
from termxfer.cli.shell import ExplorerShell
from termxfer.filetransfer.errors import TermxferError
from termxfer.utils.formatting import print_error, print_info

app = typer.Typer(
    help="Connect to a remote host and browse it interactively.",
    invoke_without_command=True,
    context_settings={"allow_interspersed_args": True},
)


@app.callback(invoke_without_command=True)
def connect(
    address: Annotated[
        str | None,
        typer.Argument(help="[protocol://][user@]host[:port][:directory]", show_default=False),
    ] = None,
    bookmark: Annotated[
        str | None,
        typer.Option("--bookmark", "-b", help="Connect using a saved bookmark."),
    ] = None,
    password: Annotated[
        str | None,
        typer.Option("--password", "-p", help="Password or key passphrase."),
    ] = None,
    on_conflict: Annotated[
        ConflictPolicy,
        typer.Option(
            "--on-conflict",
            help="What to do when a transfer destination exists.",
            case_sensitive=False,
        ),
    ] = ConflictPolicy.ASK,
) -> None:
    """Open a dual-pane session with a remote host.

    The local pane starts in the current directory, the remote pane in
    the address's directory or the remote home. Type 'help' for commands.
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
        ExplorerShell(explorer, params, store, on_conflict).run()
    finally:
        explorer.close_remote()
    print_info("Disconnected.")
