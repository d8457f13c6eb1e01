"""Abstract base classes for filesystem endpoints.

This module defines the FileSystem interface that the local adapter and
every wire adapter implement, and the FileTransfer extension that adds
session management for remote protocols.
"""

import logging
import posixpath
from abc import ABC, abstractmethod
from typing import BinaryIO

from termxfer.filetransfer.errors import IoError, IoErrorKind
from termxfer.models.entry import FileEntry
from termxfer.models.session import ConnectionParams, Protocol, Session
from termxfer.models.transfer import EndpointKind

logger = logging.getLogger(__name__)

CHUNK_SIZE = 65536
MAX_SYMLINK_HOPS = 40


class FileSystem(ABC):
    """Abstract base class for all filesystem endpoints.

    Paths are absolute once resolved; relative paths are interpreted
    against the current working directory returned by ``pwd()``.

    Example:
        >>> fs = LocalFileSystem()
        >>> for entry in fs.list_dir(fs.pwd()):
        ...     print(entry.name, entry.size)
    """

    supports_resume: bool = False

    @property
    @abstractmethod
    def kind(self) -> EndpointKind:
        """Return which explorer side this endpoint belongs to."""

    @abstractmethod
    def pwd(self) -> str:
        """Return the current working directory."""

    @abstractmethod
    def change_dir(self, path: str) -> str:
        """Change the working directory.

        Args:
            path: Absolute or relative directory path.

        Returns:
            The new absolute working directory.

        Raises:
            IoError: If the path does not exist or is not a directory.
        """

    @abstractmethod
    def list_dir(self, path: str) -> list[FileEntry]:
        """List a directory without ordering guarantees.

        Raises:
            IoError: If the directory cannot be read.
        """

    @abstractmethod
    def stat(self, path: str) -> FileEntry:
        """Return the entry at ``path`` without following a final symlink.

        Raises:
            IoError: With kind NOT_FOUND when nothing exists at ``path``.
        """

    @abstractmethod
    def open_read(self, path: str, offset: int = 0) -> BinaryIO:
        """Open a file for streaming reads.

        Args:
            path: File to read.
            offset: Byte offset to start from; non-zero requires resume support.

        Returns:
            Readable binary stream; closing it finalizes the transfer.
        """

    @abstractmethod
    def open_write(
        self,
        path: str,
        size: int | None,
        offset: int = 0,
        mode: int | None = None,
    ) -> BinaryIO:
        """Open a file for streaming writes.

        Args:
            path: Destination file, created or truncated.
            size: Total number of bytes that will be written, if known.
            offset: Byte offset to append from; non-zero requires resume support.
            mode: Permission bits for the new file, if the protocol carries them.

        Returns:
            Writable binary stream; closing it finalizes the transfer.
        """

    @abstractmethod
    def mkdir(self, path: str, mode: int | None = None) -> None:
        """Create a single directory.

        Raises:
            IoError: With kind ALREADY_EXISTS if the path exists.
        """

    @abstractmethod
    def remove_file(self, path: str) -> None:
        """Remove a file or symlink."""

    @abstractmethod
    def remove_dir(self, path: str) -> None:
        """Remove an empty directory."""

    @abstractmethod
    def rename(self, src: str, dst: str) -> None:
        """Rename or move an entry."""

    def remove(self, path: str, recursive: bool = False) -> None:
        """Remove an entry, descending into directories when asked.

        Args:
            path: Entry to remove.
            recursive: Remove a non-empty directory with all its contents.

        Raises:
            IoError: With kind DIRECTORY_NOT_EMPTY if a non-empty directory
                is removed without ``recursive``.
        """
        entry = self.stat(path)
        if not entry.is_dir:
            self.remove_file(entry.path)
            return
        if recursive:
            for child in self.list_dir(entry.path):
                self.remove(child.path, recursive=True)
        elif self.list_dir(entry.path):
            raise IoError(IoErrorKind.DIRECTORY_NOT_EMPTY, entry.path)
        self.remove_dir(entry.path)

    def copy(self, src: str, dst: str) -> None:
        """Copy an entry to a new path on the same endpoint.

        Raises:
            IoError: With kind UNSUPPORTED unless the adapter implements it.
        """
        raise IoError(IoErrorKind.UNSUPPORTED, src, "copy is not available on this endpoint")

    def exec(self, command: str) -> str:
        """Run a shell command in the working directory and return its output.

        Raises:
            IoError: With kind UNSUPPORTED unless the adapter implements it.
        """
        raise IoError(IoErrorKind.UNSUPPORTED, None, "exec is not available on this endpoint")

    def get(self, path: str) -> bytes:
        """Read a whole file into memory."""
        chunks: list[bytes] = []
        with self.open_read(path) as stream:
            while chunk := stream.read(CHUNK_SIZE):
                chunks.append(chunk)
        return b"".join(chunks)

    def put(self, stream: BinaryIO, path: str, size: int | None) -> int:
        """Write the content of ``stream`` to ``path``.

        Args:
            stream: Readable binary source.
            path: Destination file.
            size: Number of bytes the source will yield, if known.

        Returns:
            Number of bytes written.
        """
        written = 0
        with self.open_write(path, size) as sink:
            while chunk := stream.read(CHUNK_SIZE):
                sink.write(chunk)
                written += len(chunk)
        return written

    def resolve_symlink(self, entry: FileEntry) -> FileEntry:
        """Follow a symlink chain to its final target.

        Args:
            entry: Entry to resolve; non-symlinks are returned unchanged.

        Returns:
            Entry describing the link's final target.

        Raises:
            IoError: If the target is missing or unknown, or the chain loops.
        """
        hops = 0
        while entry.is_symlink:
            if not entry.symlink_target:
                raise IoError(IoErrorKind.BAD_RESPONSE, entry.path, "symlink target unknown")
            hops += 1
            if hops > MAX_SYMLINK_HOPS:
                raise IoError(IoErrorKind.OTHER, entry.path, "Too many levels of symbolic links")
            target = self.join(self.dirname(entry.path), entry.symlink_target)
            entry = self.stat(self.normpath(target))
        return entry

    def exists(self, path: str) -> bool:
        """Check if an entry exists at ``path``."""
        try:
            self.stat(path)
        except IoError as e:
            if e.kind == IoErrorKind.NOT_FOUND:
                return False
            raise
        return True

    def absolute(self, path: str) -> str:
        """Resolve ``path`` against the working directory."""
        return self.normpath(self.join(self.pwd(), path))

    def join(self, base: str, *parts: str) -> str:
        """Join path components."""
        return posixpath.join(base, *parts)

    def dirname(self, path: str) -> str:
        """Return the parent directory of ``path``."""
        return posixpath.dirname(path) or "/"

    def basename(self, path: str) -> str:
        """Return the final component of ``path``."""
        return posixpath.basename(path)

    def normpath(self, path: str) -> str:
        """Normalize ``path`` (collapse separators and dot components)."""
        normalized = posixpath.normpath(path)
        # posixpath keeps a leading double slash; a remote root is always "/"
        if normalized.startswith("//"):
            normalized = "/" + normalized.lstrip("/")
        return normalized


class FileTransfer(FileSystem):
    """Abstract base class for remote wire adapters.

    A FileTransfer owns exactly one connection. ``connect`` returns the
    Session describing it; every other call requires it to be connected.
    """

    @property
    def kind(self) -> EndpointKind:
        """Remote adapters always sit on the remote side."""
        return EndpointKind.REMOTE

    @property
    @abstractmethod
    def protocol(self) -> Protocol:
        """Return the wire protocol this adapter speaks."""

    @abstractmethod
    def connect(self, params: ConnectionParams) -> Session:
        """Open and authenticate a connection.

        Raises:
            ConnectError: If the host is unreachable or login fails.
        """

    @abstractmethod
    def disconnect(self) -> None:
        """Close the connection; safe to call when already disconnected."""

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if the connection is up."""
