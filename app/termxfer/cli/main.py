"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from termxfer import __version__
from termxfer.cli.commands import bookmarks, config, connect, keys, transfer
from termxfer.utils.formatting import err_console

app = typer.Typer(
    name="termxfer",
    help="Dual-pane SFTP, SCP, FTP and FTPS client for the terminal.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"termxfer version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool, quiet: bool) -> None:
    """Route log records to stderr through Rich.

    Args:
        verbose: Log at DEBUG level.
        quiet: Only log errors. Ignored when ``verbose`` is set.
    """
    level = logging.WARNING
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=verbose, rich_tracebacks=verbose)],
        force=True,
    )
    # paramiko logs every channel event at INFO
    logging.getLogger("paramiko").setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Log debug messages to stderr.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only log errors.",
        ),
    ] = False,
) -> None:
    """termxfer - browse and transfer files over SFTP, SCP, FTP and FTPS.

    Connect to a host for an interactive local/remote session, or use
    ls, get and put for one-shot operations.
    """
    configure_logging(verbose, quiet)


app.add_typer(connect.app, name="connect")
app.command(name="ls")(transfer.ls)
app.command(name="get")(transfer.get)
app.command(name="put")(transfer.put)
app.add_typer(bookmarks.app, name="bookmarks")
app.add_typer(keys.app, name="keys")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
