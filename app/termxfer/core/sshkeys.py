"""Storage for SSH private keys used by the SFTP and SCP adapters.

Keys are stored verbatim, one file per ``(host, username)`` pair, in
~/.config/termxfer/.ssh/ with owner-only permissions. The adapters parse
them with paramiko at connect time.
"""

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from termxfer.core.paths import ensure_ssh_keys_dir, get_ssh_keys_dir

logger = logging.getLogger(__name__)

KEY_SUFFIX = ".key"


class SshKeyError(Exception):
    """Raised when a key cannot be stored or is malformed."""


@dataclass(frozen=True, slots=True)
class StoredKey:
    """A stored key's identity.

    Attributes:
        host: Host the key is used for.
        username: Login name the key is used for.
        path: File holding the key.
    """

    host: str
    username: str
    path: Path


def _validate_component(value: str, what: str) -> None:
    if not value or "/" in value or "\\" in value or (what == "username" and "@" in value):
        msg = f"Invalid {what}: {value!r}"
        raise SshKeyError(msg)


class SshKeyStorage:
    """Maps ``(host, username)`` to a private key blob.

    Example:
        >>> storage = SshKeyStorage()
        >>> storage.add("example.com", "alice", key_text)
        >>> storage.resolve("example.com", "alice") == key_text
        True
    """

    def __init__(self, keys_dir: Path | None = None) -> None:
        """Initialize the storage.

        Args:
            keys_dir: Directory holding key files. Defaults to the config dir.
        """
        self._dir = keys_dir or get_ssh_keys_dir()

    @property
    def keys_dir(self) -> Path:
        """Return the directory holding key files."""
        return self._dir

    def _key_path(self, host: str, username: str) -> Path:
        _validate_component(host, "host")
        _validate_component(username, "username")
        return self._dir / f"{username}@{host}{KEY_SUFFIX}"

    def resolve(self, host: str, username: str) -> str | None:
        """Return the key blob stored for a host and user.

        Returns:
            Key text, or None when no key is stored.
        """
        path = self._key_path(host, username)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Cannot read SSH key %s: %s", path, e)
            return None

    def add(self, host: str, username: str, blob: str) -> Path:
        """Store a private key, replacing any existing one.

        Args:
            host: Host the key is used for.
            username: Login name the key is used for.
            blob: Private key text in OpenSSH or PEM format.

        Returns:
            Path of the stored key file.

        Raises:
            SshKeyError: If the blob is not a private key or cannot be written.
        """
        if "PRIVATE KEY-----" not in blob:
            msg = "Not a private key (missing PEM/OpenSSH header)"
            raise SshKeyError(msg)
        path = self._key_path(host, username)
        try:
            ensure_ssh_keys_dir(self._dir)
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(blob if blob.endswith("\n") else blob + "\n")
            os.chmod(path, 0o600)
        except (OSError, RuntimeError) as e:
            msg = f"Failed to store key {path}: {e}"
            raise SshKeyError(msg) from e
        logger.info("Stored SSH key for %s@%s", username, host)
        return path

    def remove(self, host: str, username: str) -> bool:
        """Delete a stored key.

        Returns:
            True if a key was removed, False if none was stored.
        """
        path = self._key_path(host, username)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        logger.info("Removed SSH key for %s@%s", username, host)
        return True

    def iter_keys(self) -> Iterator[StoredKey]:
        """Yield every stored key, ordered by file name."""
        if not self._dir.is_dir():
            return
        for path in sorted(self._dir.glob(f"*@*{KEY_SUFFIX}")):
            username, _, host = path.name[: -len(KEY_SUFFIX)].partition("@")
            yield StoredKey(host=host, username=username, path=path)
