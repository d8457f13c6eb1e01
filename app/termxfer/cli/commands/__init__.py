"""CLI commands for termxfer.

This package contains all subcommand implementations.
"""

from termxfer.cli.commands import bookmarks, config, connect, keys, transfer

__all__ = ["bookmarks", "config", "connect", "keys", "transfer"]
