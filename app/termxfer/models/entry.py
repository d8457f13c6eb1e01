"""Filesystem entry model shared by local and remote endpoints.

This module defines the FileEntry structure every adapter produces,
regardless of the wire protocol it was read from.
"""

import re
import stat
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

_WINDOWS_ROOT = re.compile(r"^[A-Za-z]:[\\/]$")


class EntryKind(str, Enum):
    """Kind of filesystem object.

    Attributes:
        FILE: Regular file.
        DIRECTORY: Directory.
        SYMLINK: Symbolic link (target kept in ``symlink_target``).
    """

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"


def is_root_path(path: str) -> bool:
    """Check whether a path is a filesystem root (``/`` or ``C:\\``)."""
    return path in ("/", "\\") or bool(_WINDOWS_ROOT.match(path))


def mode_to_string(kind: EntryKind, mode: int | None) -> str:
    """Render permission bits the way ``ls -l`` does.

    Args:
        kind: Entry kind, used for the leading type character.
        mode: Permission bits, or None when unknown.

    Returns:
        Ten character string such as ``drwxr-xr-x``.
    """
    type_char = {EntryKind.DIRECTORY: "d", EntryKind.SYMLINK: "l"}.get(kind, "-")
    if mode is None:
        return type_char + "?" * 9
    return type_char + stat.filemode(mode | stat.S_IFREG)[1:]


@dataclass(frozen=True, slots=True)
class FileEntry:
    """A single filesystem object, local or remote.

    Attributes:
        name: Base name of the entry.
        path: Absolute normalized path (no trailing separator except root).
        kind: File, directory or symlink.
        size: Size in bytes; None for directories (and when unknown).
        mode: UNIX permission bits (``0o777`` mask), None when unknown.
        user: Owner user name or numeric id.
        group: Owner group name or numeric id.
        atime: Last access time, if the protocol reports it.
        mtime: Last modification time, if the protocol reports it.
        ctime: Creation/change time, if the protocol reports it.
        symlink_target: Link target; present iff kind is SYMLINK.
    """

    name: str
    path: str
    kind: EntryKind
    size: int | None = None
    mode: int | None = None
    user: str | None = None
    group: str | None = None
    atime: datetime | None = field(default=None, compare=False)
    mtime: datetime | None = None
    ctime: datetime | None = field(default=None, compare=False)
    symlink_target: str | None = None

    def __post_init__(self) -> None:
        """Validate entry invariants after initialization."""
        if not self.name:
            msg = "Entry name cannot be empty"
            raise ValueError(msg)
        if not self.path:
            msg = "Entry path cannot be empty"
            raise ValueError(msg)
        if self.path.endswith(("/", "\\")) and not is_root_path(self.path):
            msg = f"Entry path must not end with a separator: {self.path!r}"
            raise ValueError(msg)
        if (self.kind == EntryKind.SYMLINK) != (self.symlink_target is not None):
            msg = f"Symlink target must be set iff entry is a symlink: {self.path!r}"
            raise ValueError(msg)
        if self.kind == EntryKind.DIRECTORY and self.size is not None:
            msg = f"Directories carry no size: {self.path!r}"
            raise ValueError(msg)
        if self.size is not None and self.size < 0:
            msg = f"Size cannot be negative, got {self.size}"
            raise ValueError(msg)

    @property
    def is_dir(self) -> bool:
        """Check if the entry is a directory."""
        return self.kind == EntryKind.DIRECTORY

    @property
    def is_file(self) -> bool:
        """Check if the entry is a regular file."""
        return self.kind == EntryKind.FILE

    @property
    def is_symlink(self) -> bool:
        """Check if the entry is a symbolic link."""
        return self.kind == EntryKind.SYMLINK

    @property
    def is_hidden(self) -> bool:
        """Check if the entry is a dot-file."""
        return self.name.startswith(".")

    @property
    def extension(self) -> str | None:
        """Return the lowercase extension without the dot, if any."""
        stem, dot, ext = self.name.rpartition(".")
        if not dot or not stem or not ext:
            return None
        return ext.lower()

    @property
    def permissions(self) -> str:
        """Return ``ls -l`` style permission string."""
        return mode_to_string(self.kind, self.mode)

    @property
    def pex(self) -> tuple[int, int, int] | None:
        """Return the (user, group, others) permission triplet."""
        if self.mode is None:
            return None
        return ((self.mode >> 6) & 0o7, (self.mode >> 3) & 0o7, self.mode & 0o7)

    @property
    def size_human(self) -> str:
        """Return human-readable size string."""
        if self.size is None:
            return ""

        size = float(self.size)
        for unit in ("B", "KB", "MB", "GB"):
            if size < 1024:
                return f"{size:.1f} {unit}" if unit != "B" else f"{self.size} B"
            size /= 1024
        return f"{size:.1f} TB"
