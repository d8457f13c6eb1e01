"""Shared helpers for CLI commands.

This module builds the objects every command needs (configuration,
bookmark store, explorer) and resolves connection parameters from an
address or a bookmark, so the command modules stay thin.
"""

import logging

import typer

from termxfer.core.bookmarks import BookmarkError, BookmarkStore
from termxfer.core.config import ConfigError, UserConfig, load_config
from termxfer.core.remote import RemoteFileSystem
from termxfer.core.sshkeys import SshKeyStorage
from termxfer.explorer.formatter import Formatter
from termxfer.explorer.state import Explorer
from termxfer.host.local import LocalFileSystem
from termxfer.models.session import ConnectionParams, Session
from termxfer.utils.formatting import print_error, print_info, print_warning
from termxfer.utils.parser import AddressError, parse_remote_address
from termxfer.vault import CredentialVault, select_key_store

logger = logging.getLogger(__name__)


def require_config() -> UserConfig:
    """Load the user configuration or exit with an error.

    Raises:
        typer.Exit: With code 1 if the configuration is invalid.
    """
    try:
        return load_config()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def open_bookmark_store() -> BookmarkStore:
    """Open the bookmark store with the credential vault attached.

    Raises:
        typer.Exit: With code 1 if bookmarks.toml is invalid.
    """
    try:
        return BookmarkStore(vault=CredentialVault(select_key_store()))
    except BookmarkError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def build_explorer(config: UserConfig) -> Explorer:
    """Create an explorer configured from user preferences."""
    remote = RemoteFileSystem(
        key_storage=SshKeyStorage(),
        connect_timeout=config.connect_timeout,
    )
    return Explorer(
        LocalFileSystem(),
        remote,
        local_formatter=Formatter(config.local_file_fmt),
        remote_formatter=Formatter(config.remote_file_fmt),
        sort_key=config.sort_key,
        group_dirs=config.group_dirs,
        show_hidden=config.show_hidden_files,
    )


def _has_stored_key(params: ConnectionParams) -> bool:
    if not params.protocol.is_ssh or not params.username:
        return False
    return SshKeyStorage().resolve(params.address, params.username) is not None


def resolve_params(
    config: UserConfig,
    store: BookmarkStore,
    address: str | None,
    bookmark: str | None,
    password: str | None,
    ask_password: bool = True,
) -> ConnectionParams:
    """Build connection parameters from an address or a bookmark.

    Password precedence: the ``--password`` option, then a password
    saved with the bookmark, then an interactive prompt. The prompt is
    skipped when an SSH key is stored for the host.

    Raises:
        typer.Exit: With code 1 if neither source is usable.
    """
    if bookmark is not None:
        saved = store.get_bookmark(bookmark)
        if saved is None:
            print_error(f"No bookmark named '{bookmark}'")
            raise typer.Exit(code=1)
        params = store.to_params(saved)
    elif address is not None:
        try:
            params = parse_remote_address(address, config.default_protocol)
        except (AddressError, ValueError) as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
    else:
        print_error("Provide an address or --bookmark")
        raise typer.Exit(code=1)

    if password is not None:
        params.password = password
    elif params.password is None and ask_password and not _has_stored_key(params):
        entered = typer.prompt(
            f"Password for {params.display}",
            default="",
            hide_input=True,
            show_default=False,
        )
        params.password = entered or None
    return params


def open_session(explorer: Explorer, params: ConnectionParams, store: BookmarkStore) -> Session:
    """Connect the explorer's remote pane and record the host as recent.

    Raises:
        ConnectError: If the connection fails.
    """
    session = explorer.open_remote(params)
    print_info(f"Connected to {params.display} ({session.wrkdir})")
    if session.banner:
        print_info(session.banner.strip())
    store.add_recent(params)
    try:
        store.save()
    except BookmarkError as e:
        print_warning(f"Could not record recent host: {e}")
    return session
