"""SSH key management commands.

Provides commands to store, list and remove private keys used for SFTP
and SCP authentication.
"""

from pathlib import Path
from typing import Annotated

import typer

from termxfer.cli.display import create_keys_table
from termxfer.core.sshkeys import SshKeyError, SshKeyStorage
from termxfer.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage SSH keys for remote hosts.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command("list")
def list_keys() -> None:
    """List stored SSH keys."""
    keys = list(SshKeyStorage().iter_keys())
    if not keys:
        print_info("No SSH keys stored.")
        return
    console.print(create_keys_table(keys))


@app.command()
def add(
    host: Annotated[str, typer.Argument(help="Host the key is used for.")],
    username: Annotated[str, typer.Argument(help="Login name the key is used for.")],
    key_file: Annotated[
        Path,
        typer.Argument(
            help="Private key file to import.",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ],
) -> None:
    """Import a private key for a host and user."""
    try:
        blob = key_file.read_text(encoding="utf-8")
        path = SshKeyStorage().add(host, username, blob)
    except (OSError, UnicodeDecodeError) as e:
        print_error(f"Cannot read {key_file}: {e}")
        raise typer.Exit(code=1) from e
    except SshKeyError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Key for {username}@{host} stored at {path}")


@app.command()
def remove(
    host: Annotated[str, typer.Argument(help="Host the key is used for.")],
    username: Annotated[str, typer.Argument(help="Login name the key is used for.")],
) -> None:
    """Delete the stored key for a host and user."""
    try:
        removed = SshKeyStorage().remove(host, username)
    except SshKeyError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    if not removed:
        print_error(f"No key stored for {username}@{host}")
        raise typer.Exit(code=1)
    print_success(f"Key for {username}@{host} removed")
