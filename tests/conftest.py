"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules, including
an in-memory remote endpoint that stands in for a live server.
"""

import io
import os
import posixpath
from collections.abc import Iterator
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import pytest
from termxfer.filetransfer.base import FileTransfer
from termxfer.filetransfer.errors import ConnectionLost, IoError, IoErrorKind
from termxfer.models.entry import EntryKind, FileEntry
from termxfer.models.session import AuthMethod, ConnectionParams, Protocol, Session
from termxfer.vault import FileKeyStore

FIXED_MTIME = datetime(2024, 1, 15, 10, 0)


class _MemoryWriter(io.BytesIO):
    """Buffer that commits its content to the owning store on close."""

    def __init__(self, store: "MemoryFileTransfer", path: str, prefix: bytes) -> None:
        super().__init__()
        self._store = store
        self._path = path
        self.write(prefix)

    def close(self) -> None:
        if not self.closed:
            self._store.files[self._path] = self.getvalue()
        super().close()


class MemoryFileTransfer(FileTransfer):
    """In-memory remote endpoint.

    Files live in ``files`` (path to bytes), directories in ``dirs`` and
    symlinks in ``links`` (path to target). Setting ``lose_connection``
    makes every later call raise ConnectionLost.
    """

    supports_resume = True

    def __init__(self, home: str = "/home/user") -> None:
        self.home = home
        self.files: dict[str, bytes] = {}
        self.dirs: set[str] = {"/"}
        self.links: dict[str, str] = {}
        self.connected = False
        self.lose_connection = False
        self.commands: list[str] = []
        self._wrkdir = home
        self.add_dir(home)

    # -- setup helpers -------------------------------------------------------

    def add_dir(self, path: str) -> None:
        while path not in self.dirs:
            self.dirs.add(path)
            path = posixpath.dirname(path)

    def add_file(self, path: str, data: bytes) -> None:
        self.add_dir(posixpath.dirname(path))
        self.files[path] = data

    def add_link(self, path: str, target: str) -> None:
        self.add_dir(posixpath.dirname(path))
        self.links[path] = target

    # -- FileTransfer --------------------------------------------------------

    @property
    def protocol(self) -> Protocol:
        return Protocol.SFTP

    def connect(self, params: ConnectionParams) -> Session:
        self.connected = True
        if params.directory:
            self._wrkdir = self.change_dir(params.directory)
        return Session(
            protocol=params.protocol,
            host=params.address,
            port=params.port,
            username=params.username,
            wrkdir=self._wrkdir,
            auth_method=AuthMethod.PASSWORD,
            client=self,
            banner="Welcome to memory",
        )

    def disconnect(self) -> None:
        self.connected = False

    def is_connected(self) -> bool:
        return self.connected

    def _check(self) -> None:
        if self.lose_connection:
            raise ConnectionLost("Connection reset by peer")

    def _entry(self, path: str) -> FileEntry:
        name = posixpath.basename(path) or "/"
        common = {"name": name, "path": path, "user": "user", "group": "user", "mtime": FIXED_MTIME}
        if path in self.links:
            target = self.links[path]
            return FileEntry(
                kind=EntryKind.SYMLINK,
                size=len(target),
                mode=0o777,
                symlink_target=target,
                **common,
            )
        if path in self.dirs:
            return FileEntry(kind=EntryKind.DIRECTORY, mode=0o755, **common)
        if path in self.files:
            return FileEntry(kind=EntryKind.FILE, size=len(self.files[path]), mode=0o644, **common)
        raise IoError(IoErrorKind.NOT_FOUND, path)

    def pwd(self) -> str:
        self._check()
        return self._wrkdir

    def change_dir(self, path: str) -> str:
        self._check()
        target = self.absolute(path)
        if target in self.links:
            target = self.normpath(self.join(self.dirname(target), self.links[target]))
        if target not in self.dirs:
            kind = IoErrorKind.NOT_A_DIRECTORY if target in self.files else IoErrorKind.NOT_FOUND
            raise IoError(kind, target)
        self._wrkdir = target
        return target

    def list_dir(self, path: str) -> list[FileEntry]:
        self._check()
        directory = self.absolute(path)
        if directory not in self.dirs:
            raise IoError(IoErrorKind.NOT_FOUND, directory)
        children = {
            p
            for p in (*self.dirs, *self.files, *self.links)
            if p != directory and posixpath.dirname(p) == directory
        }
        return [self._entry(p) for p in sorted(children)]

    def stat(self, path: str) -> FileEntry:
        self._check()
        return self._entry(self.absolute(path))

    def open_read(self, path: str, offset: int = 0):
        self._check()
        target = self.absolute(path)
        if target not in self.files:
            raise IoError(IoErrorKind.NOT_FOUND, target)
        return io.BytesIO(self.files[target][offset:])

    def open_write(self, path: str, size: int | None, offset: int = 0, mode: int | None = None):
        self._check()
        target = self.absolute(path)
        if self.dirname(target) not in self.dirs:
            raise IoError(IoErrorKind.NOT_FOUND, target)
        prefix = self.files.get(target, b"")[:offset]
        return _MemoryWriter(self, target, prefix)

    def mkdir(self, path: str, mode: int | None = None) -> None:
        self._check()
        target = self.absolute(path)
        if target in self.dirs or target in self.files:
            raise IoError(IoErrorKind.ALREADY_EXISTS, target)
        if self.dirname(target) not in self.dirs:
            raise IoError(IoErrorKind.NOT_FOUND, target)
        self.dirs.add(target)

    def remove_file(self, path: str) -> None:
        self._check()
        target = self.absolute(path)
        if self.links.pop(target, None) is None and self.files.pop(target, None) is None:
            raise IoError(IoErrorKind.NOT_FOUND, target)

    def remove_dir(self, path: str) -> None:
        self._check()
        target = self.absolute(path)
        if target not in self.dirs:
            raise IoError(IoErrorKind.NOT_FOUND, target)
        if self.list_dir(target):
            raise IoError(IoErrorKind.DIRECTORY_NOT_EMPTY, target)
        self.dirs.discard(target)

    def rename(self, src: str, dst: str) -> None:
        self._check()
        source, destination = self.absolute(src), self.absolute(dst)
        if source in self.files:
            self.files[destination] = self.files.pop(source)
        elif source in self.links:
            self.links[destination] = self.links.pop(source)
        else:
            raise IoError(IoErrorKind.NOT_FOUND, source)

    def exec(self, command: str) -> str:
        self._check()
        self.commands.append(command)
        return f"ran {command} in {self._wrkdir}\n"


@pytest.fixture
def memory_remote() -> MemoryFileTransfer:
    """In-memory remote with a small tree under /home/user."""
    remote = MemoryFileTransfer()
    remote.add_file("/home/user/readme.txt", b"hello remote\n")
    remote.add_file("/home/user/data/a.bin", b"a" * 100)
    remote.add_file("/home/user/data/nested/b.bin", b"b" * 50)
    remote.add_file("/home/user/.profile", b"export X=1\n")
    remote.add_dir("/home/user/empty")
    return remote


@pytest.fixture
def local_tree(tmp_path: Path) -> Path:
    """Local directory with files, a subdirectory and a hidden file."""
    root = tmp_path / "local"
    (root / "docs").mkdir(parents=True)
    (root / "docs" / "guide.md").write_text("# Guide\n")
    (root / "notes.txt").write_text("some notes\n")
    (root / ".hidden").write_text("secret\n")
    return root


@pytest.fixture
def sample_ls_output() -> str:
    """Sample ``ls -la`` output including names with spaces and links."""
    return """total 32
drwxr-xr-x  4 user staff 4096 Jan 15 10:00 .
drwxr-xr-x 12 root root  4096 Jan  2  2023 ..
-rw-r--r--  1 user staff 1024 Jan 15 09:30 my report.pdf
-rw-r--r--  1 user staff    0 Mar  3  2022  leading space.txt
drwxr-xr-x  2 user staff 4096 Feb  1 08:15 photos
lrwxrwxrwx  1 user staff   11 Feb  1 08:15 latest -> photos/2024
crw-rw-rw-  1 root root  1, 3 Feb  1 08:15 null
-rwsr-xr-x  1 root root  5120 2023-06-01 12:00 setuid tool"""


@pytest.fixture
def config_home(tmp_path: Path) -> Iterator[Path]:
    """Point the config directory at a temp dir and keep the vault key in a file.

    Yields:
        The termxfer config directory (not created until something is saved).
    """
    xdg = tmp_path / "xdg"
    app_dir = xdg / "termxfer"
    with (
        patch.dict(os.environ, {"XDG_CONFIG_HOME": str(xdg)}),
        patch(
            "termxfer.cli.session.select_key_store",
            return_value=FileKeyStore(app_dir / ".vault.key"),
        ),
    ):
        yield app_dir
