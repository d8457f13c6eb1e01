"""Storage backends for the vault's encryption key.

The key lives in the OS secret store when one is usable and falls back
to an owner-only key file in the config directory otherwise. The choice
is made at runtime by probing the keyring backend.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path

import keyring
from keyring.backends import fail
from keyring.errors import KeyringError

from termxfer.core.paths import get_vault_key_path
from termxfer.filetransfer.errors import VaultError

logger = logging.getLogger(__name__)

SERVICE_NAME = "termxfer"


class KeyStore(ABC):
    """Abstract base class for vault key storage.

    Example:
        >>> store = select_key_store()
        >>> store.set_key("bookmarks", "c2VjcmV0")
        >>> store.get_key("bookmarks")
        'c2VjcmV0'
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return a short label for logs and diagnostics."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this backend can be used on this system."""

    @abstractmethod
    def get_key(self, storage_id: str) -> str | None:
        """Return the stored key, or None if none was stored.

        Raises:
            VaultError: If the backend fails.
        """

    @abstractmethod
    def set_key(self, storage_id: str, key: str) -> None:
        """Store a key, replacing any existing one.

        Raises:
            VaultError: If the backend fails.
        """


class KeyringKeyStore(KeyStore):
    """Key storage in the OS secret store through ``keyring``."""

    def __init__(self, service: str = SERVICE_NAME) -> None:
        self._service = service

    @property
    def name(self) -> str:
        return "keyring"

    def is_available(self) -> bool:
        try:
            backend = keyring.get_keyring()
        except KeyringError as e:
            logger.debug("Keyring probe failed: %s", e)
            return False
        if isinstance(backend, fail.Keyring):
            return False
        return getattr(backend, "priority", 0) >= 1

    def get_key(self, storage_id: str) -> str | None:
        try:
            return keyring.get_password(self._service, storage_id)
        except KeyringError as e:
            raise VaultError("Cannot read key from keyring", str(e)) from e

    def set_key(self, storage_id: str, key: str) -> None:
        try:
            keyring.set_password(self._service, storage_id, key)
        except KeyringError as e:
            raise VaultError("Cannot write key to keyring", str(e)) from e


class FileKeyStore(KeyStore):
    """Key storage in an owner-only file.

    A single file holds one key; ``storage_id`` is accepted for interface
    compatibility and recorded in logs only.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or get_vault_key_path()

    @property
    def name(self) -> str:
        return "file"

    @property
    def path(self) -> Path:
        """Return the key file path."""
        return self._path

    def is_available(self) -> bool:
        return True

    def get_key(self, storage_id: str) -> str | None:
        try:
            with open(self._path, encoding="ascii") as f:
                return f.read().strip() or None
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise VaultError(f"Cannot read key file {self._path}", str(e)) from e

    def set_key(self, storage_id: str, key: str) -> None:
        logger.debug("Writing vault key %r to %s", storage_id, self._path)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="ascii") as f:
                f.write(key)
            os.chmod(self._path, 0o600)
        except OSError as e:
            raise VaultError(f"Cannot write key file {self._path}", str(e)) from e


def select_key_store(key_file: Path | None = None, use_keyring: bool = True) -> KeyStore:
    """Pick the key storage backend for this system.

    Args:
        key_file: Key file used by the file backend.
        use_keyring: Probe the OS secret store first.

    Returns:
        A usable KeyStore.
    """
    if use_keyring:
        store = KeyringKeyStore()
        if store.is_available():
            logger.debug("Using keyring for vault key storage")
            return store
        logger.info("No usable keyring backend, storing vault key in a file")
    return FileKeyStore(key_file)
