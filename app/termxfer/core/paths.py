"""Locations of termxfer's files.

Everything lives in one directory, ``$XDG_CONFIG_HOME/termxfer`` (by
default ``~/.config/termxfer``)::

    config.toml      user preferences
    bookmarks.toml   bookmarks and recent hosts
    theme.toml       colour overrides
    .vault.key       bookmark password key when no OS keyring is available
    .ssh/            private keys, one file per user@host
"""

import os
from pathlib import Path

APP_NAME = "termxfer"

CONFIG_FILE = "config.toml"
BOOKMARKS_FILE = "bookmarks.toml"
THEME_FILE = "theme.toml"
VAULT_KEY_FILE = ".vault.key"
SSH_KEYS_DIR = ".ssh"


def get_config_dir() -> Path:
    """Return the termxfer directory, honouring ``XDG_CONFIG_HOME``."""
    base = os.environ.get("XDG_CONFIG_HOME")
    root = Path(base) if base else Path.home() / ".config"
    return root / APP_NAME


def get_config_path() -> Path:
    return get_config_dir() / CONFIG_FILE


def get_bookmarks_path() -> Path:
    return get_config_dir() / BOOKMARKS_FILE


def get_theme_path() -> Path:
    return get_config_dir() / THEME_FILE


def get_vault_key_path() -> Path:
    """Key file used by the vault when the OS keyring is unavailable."""
    return get_config_dir() / VAULT_KEY_FILE


def get_ssh_keys_dir() -> Path:
    return get_config_dir() / SSH_KEYS_DIR


def ensure_private_dir(path: Path) -> Path:
    """Create ``path`` and its parents; the leaf is made owner-only.

    Args:
        path: Directory to create. An existing directory is left as is.

    Returns:
        ``path``.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    try:
        path.mkdir(mode=0o700, parents=True, exist_ok=True)
    except PermissionError as e:
        msg = f"Cannot create directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_ssh_keys_dir(base: Path | None = None) -> Path:
    """Create the SSH key directory (or ``base`` instead) owner-only."""
    return ensure_private_dir(base or get_ssh_keys_dir())
