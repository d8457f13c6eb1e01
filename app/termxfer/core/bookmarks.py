"""Bookmarks and recently used hosts.

Both lists are stored in ~/.config/termxfer/bookmarks.toml. Bookmark
passwords are stored only as vault-encrypted blobs; recent hosts never
carry a password.
"""

import logging
import tomllib
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from termxfer.core.config import write_toml_atomic
from termxfer.core.paths import get_bookmarks_path
from termxfer.filetransfer.errors import VaultError
from termxfer.models.session import ConnectionParams, Protocol
from termxfer.vault.vault import CredentialVault

logger = logging.getLogger(__name__)

MAX_RECENT_HOSTS = 16


class BookmarkError(Exception):
    """Raised when the bookmarks file cannot be read or written."""


class RecentHost(BaseModel):
    """A host recently connected to.

    Attributes:
        protocol: Wire protocol.
        address: Host name or IP address.
        port: Remote port.
        username: Login name, if any.
        directory: Initial remote directory, if any.
    """

    model_config = ConfigDict(extra="forbid")

    protocol: Protocol
    address: Annotated[str, Field(min_length=1)]
    port: Annotated[int, Field(ge=1, le=65535)]
    username: str | None = None
    directory: str | None = None

    @property
    def host_key(self) -> tuple[str, str, int, str | None]:
        """Return the identity used to deduplicate recent hosts."""
        return (self.protocol.value, self.address.lower(), self.port, self.username)

    @property
    def display(self) -> str:
        """Return ``protocol://user@host:port`` for listings."""
        user = f"{self.username}@" if self.username else ""
        return f"{self.protocol.value}://{user}{self.address}:{self.port}"

    @classmethod
    def from_params(cls, params: ConnectionParams) -> "RecentHost":
        """Build a record from connection parameters, dropping the password."""
        return cls(
            protocol=params.protocol,
            address=params.address,
            port=params.port,
            username=params.username,
            directory=params.directory,
        )


class Bookmark(RecentHost):
    """A named, saved host.

    Attributes:
        name: Unique bookmark name.
        password: Vault-encrypted password blob, if saved.
    """

    name: Annotated[str, Field(min_length=1)]
    password: str | None = None


class BookmarksFile(BaseModel):
    """On-disk layout of bookmarks.toml."""

    model_config = ConfigDict(extra="forbid")

    bookmarks: list[Bookmark] = Field(default_factory=list)
    recents: list[RecentHost] = Field(default_factory=list)


class BookmarkStore:
    """Loads, edits and saves bookmarks and the recent hosts ring.

    Recent hosts are kept oldest first; the newest is the last element.

    Example:
        >>> store = BookmarkStore(vault=vault)
        >>> store.add_bookmark("prod", params, save_password=True)
        >>> store.save()
    """

    def __init__(self, path: Path | None = None, vault: CredentialVault | None = None) -> None:
        """Initialize the store and load the file if it exists.

        Args:
            path: bookmarks.toml location. Defaults to the config dir.
            vault: Vault used for password encryption. Without one,
                passwords are never saved.

        Raises:
            BookmarkError: If the file exists but is invalid.
        """
        self._path = path or get_bookmarks_path()
        self._vault = vault
        self._data = self._load()

    @property
    def path(self) -> Path:
        """Return the bookmarks file path."""
        return self._path

    def _load(self) -> BookmarksFile:
        if not self._path.exists():
            return BookmarksFile()
        try:
            with open(self._path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise BookmarkError(f"Invalid TOML syntax in {self._path}: {e}") from e
        except OSError as e:
            raise BookmarkError(f"Failed to read bookmarks: {e}") from e
        try:
            return BookmarksFile.model_validate(data)
        except ValidationError as e:
            raise BookmarkError(f"Invalid bookmarks content in {self._path}: {e}") from e

    def save(self) -> Path:
        """Write bookmarks and recent hosts to disk atomically.

        Raises:
            BookmarkError: If the file cannot be written.
        """
        try:
            return write_toml_atomic(
                self._path,
                self._data.model_dump(mode="json", exclude_none=True),
                mode=0o600,
            )
        except OSError as e:
            raise BookmarkError(f"Failed to write bookmarks: {e}") from e

    # -- bookmarks ------------------------------------------------------------

    def bookmarks(self) -> list[Bookmark]:
        """Return all bookmarks in insertion order."""
        return list(self._data.bookmarks)

    def get_bookmark(self, name: str) -> Bookmark | None:
        """Return the bookmark with ``name``, if any."""
        return next((b for b in self._data.bookmarks if b.name == name), None)

    def add_bookmark(
        self,
        name: str,
        params: ConnectionParams,
        save_password: bool = False,
    ) -> Bookmark:
        """Create or replace a bookmark.

        A bookmark with an existing name is replaced in place.

        Args:
            name: Bookmark name.
            params: Connection parameters to save.
            save_password: Encrypt and store ``params.password``.

        Returns:
            The stored bookmark.

        Raises:
            VaultError: If the password cannot be encrypted.
        """
        password: str | None = None
        if save_password and params.password:
            if self._vault is None:
                logger.warning("No vault configured; bookmark %r saved without password", name)
            else:
                password = self._vault.encrypt(params.password)

        bookmark = Bookmark(
            name=name,
            protocol=params.protocol,
            address=params.address,
            port=params.port,
            username=params.username,
            directory=params.directory,
            password=password,
        )
        for index, existing in enumerate(self._data.bookmarks):
            if existing.name == name:
                self._data.bookmarks[index] = bookmark
                break
        else:
            self._data.bookmarks.append(bookmark)
        return bookmark

    def remove_bookmark(self, name: str) -> bool:
        """Delete a bookmark.

        Returns:
            True if a bookmark was removed.
        """
        before = len(self._data.bookmarks)
        self._data.bookmarks = [b for b in self._data.bookmarks if b.name != name]
        return len(self._data.bookmarks) != before

    # -- recent hosts ---------------------------------------------------------

    def recents(self) -> list[RecentHost]:
        """Return recent hosts, oldest first."""
        return list(self._data.recents)

    def add_recent(self, params: ConnectionParams) -> RecentHost:
        """Record a successful connection.

        A host already in the ring moves to the newest position; when the
        ring is full the oldest host is evicted.

        Returns:
            The stored record.
        """
        recent = RecentHost.from_params(params)
        recents = [r for r in self._data.recents if r.host_key != recent.host_key]
        recents.append(recent)
        while len(recents) > MAX_RECENT_HOSTS:
            evicted = recents.pop(0)
            logger.debug("Evicted recent host %s", evicted.display)
        self._data.recents = recents
        return recent

    # -- conversion -----------------------------------------------------------

    def to_params(self, host: RecentHost) -> ConnectionParams:
        """Turn a bookmark or recent host into connection parameters.

        A password that cannot be decrypted is dropped with a warning so
        the user is prompted instead.
        """
        password: str | None = None
        if isinstance(host, Bookmark) and host.password:
            if self._vault is None:
                logger.warning("No vault configured; ignoring saved password for %r", host.name)
            else:
                try:
                    password = self._vault.decrypt(host.password)
                except VaultError as e:
                    logger.warning("Cannot decrypt password for bookmark %r: %s", host.name, e)
        return ConnectionParams(
            protocol=host.protocol,
            address=host.address,
            port=host.port,
            username=host.username,
            password=password,
            directory=host.directory,
        )
