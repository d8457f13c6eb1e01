"""CLI package for termxfer.

This package contains the Typer application and all subcommands.
"""

from termxfer.cli.main import app

__all__ = ["app"]
