"""Configuration commands.

Provides commands to show the effective configuration, write a default
config file and print where configuration lives.
"""

from typing import Annotated

import tomli_w
import typer

from termxfer.cli.session import require_config
from termxfer.core.config import ConfigError, UserConfig, save_config
from termxfer.core.paths import (
    get_bookmarks_path,
    get_config_path,
    get_ssh_keys_dir,
    get_theme_path,
)
from termxfer.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Show and initialize configuration.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command()
def show() -> None:
    """Print the effective configuration as TOML."""
    config = require_config()
    console.print(tomli_w.dumps(config.model_dump(mode="json")), markup=False, highlight=False)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a config file with default settings."""
    path = get_config_path()
    if path.exists() and not force:
        print_info(f"Config already exists at {path} (use --force to overwrite)")
        return
    try:
        saved = save_config(UserConfig(), path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Default config written to {saved}")


@app.command()
def path() -> None:
    """Print the locations of configuration files."""
    console.print(f"[muted]config:[/]    {get_config_path()}")
    console.print(f"[muted]bookmarks:[/] {get_bookmarks_path()}")
    console.print(f"[muted]ssh keys:[/]  {get_ssh_keys_dir()}")
    console.print(f"[muted]theme:[/]     {get_theme_path()}")
