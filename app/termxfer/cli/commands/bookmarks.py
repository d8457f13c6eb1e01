"""Bookmark management commands.

Provides commands to list, add and remove bookmarks and to show the
recently used hosts.
"""

from typing import Annotated

import typer

from termxfer.cli.display import create_hosts_table
from termxfer.cli.session import open_bookmark_store, require_config
from termxfer.core.bookmarks import BookmarkError
from termxfer.filetransfer.errors import VaultError
from termxfer.utils.formatting import console, print_error, print_info, print_success
from termxfer.utils.parser import AddressError, parse_remote_address

app = typer.Typer(
    help="Manage saved hosts.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command("list")
def list_bookmarks() -> None:
    """List saved bookmarks."""
    store = open_bookmark_store()
    bookmarks = store.bookmarks()
    if not bookmarks:
        print_info("No bookmarks saved.")
        return
    console.print(create_hosts_table(list(bookmarks), "Bookmarks"))


@app.command()
def recent() -> None:
    """List recently used hosts, newest first."""
    store = open_bookmark_store()
    recents = store.recents()
    if not recents:
        print_info("No recent hosts.")
        return
    console.print(create_hosts_table(list(reversed(recents)), "Recent Hosts"))


@app.command()
def add(
    name: Annotated[str, typer.Argument(help="Bookmark name.")],
    address: Annotated[
        str,
        typer.Argument(help="[protocol://][user@]host[:port][:directory]"),
    ],
    save_password: Annotated[
        bool,
        typer.Option("--save-password", "-s", help="Prompt for a password and store it encrypted."),
    ] = False,
) -> None:
    """Save a host under a name, replacing any bookmark with that name."""
    config = require_config()
    try:
        params = parse_remote_address(address, config.default_protocol)
    except (AddressError, ValueError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if save_password:
        params.password = typer.prompt("Password", hide_input=True, confirmation_prompt=True)

    store = open_bookmark_store()
    try:
        store.add_bookmark(name, params, save_password=save_password)
        path = store.save()
    except (BookmarkError, VaultError) as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Bookmark '{name}' saved to {path}")


@app.command()
def remove(
    name: Annotated[str, typer.Argument(help="Bookmark name.")],
) -> None:
    """Delete a bookmark."""
    store = open_bookmark_store()
    if not store.remove_bookmark(name):
        print_error(f"No bookmark named '{name}'")
        raise typer.Exit(code=1)
    try:
        store.save()
    except BookmarkError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Bookmark '{name}' removed")
