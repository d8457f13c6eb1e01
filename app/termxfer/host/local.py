"""Local filesystem adapter.

This module implements the FileSystem interface over the host's own
filesystem so the local pane and the transfer engine can treat it like
any remote endpoint.
"""

import logging
import os
import shutil
import stat as stat_module
import subprocess
from datetime import datetime
from typing import Any, BinaryIO

from termxfer.filetransfer.base import FileSystem
from termxfer.filetransfer.errors import IoError, IoErrorKind
from termxfer.filetransfer.streams import ReadStream, WriteStream
from termxfer.models.entry import EntryKind, FileEntry
from termxfer.models.transfer import EndpointKind
from termxfer.utils.shell import run_shell

try:
    import grp
    import pwd
except ImportError:
    # No UNIX user database on this platform; owners stay numeric
    grp = None  # type: ignore[assignment]
    pwd = None  # type: ignore[assignment]

logger = logging.getLogger(__name__)

HAS_UNIX_MODES = os.name == "posix"


def _owner_name(uid: int) -> str | None:
    if pwd is None:
        return None
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


def _group_name(gid: int) -> str | None:
    if grp is None:
        return None
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)


class LocalFileSystem(FileSystem):
    """FileSystem over the local host.

    Example:
        >>> fs = LocalFileSystem()
        >>> fs.change_dir("/tmp")
        '/tmp'
    """

    supports_resume = True

    def __init__(self, wrkdir: str | None = None, exec_timeout: float | None = None) -> None:
        """Initialize the adapter.

        Args:
            wrkdir: Initial working directory. Defaults to the process cwd.
            exec_timeout: Timeout for ``exec`` commands, None for no limit.
        """
        self._wrkdir = os.path.abspath(wrkdir or os.getcwd())
        self._exec_timeout = exec_timeout

    @property
    def kind(self) -> EndpointKind:
        return EndpointKind.LOCAL

    def _to_entry(self, path: str, st: os.stat_result) -> FileEntry:
        target: str | None = None
        if stat_module.S_ISLNK(st.st_mode):
            kind, size = EntryKind.SYMLINK, st.st_size
            try:
                target = os.readlink(path)
            except OSError as e:
                raise IoError.from_os_error(e, path) from e
        elif stat_module.S_ISDIR(st.st_mode):
            kind, size = EntryKind.DIRECTORY, None
        else:
            kind, size = EntryKind.FILE, st.st_size

        if HAS_UNIX_MODES:
            mode = stat_module.S_IMODE(st.st_mode)
        elif kind == EntryKind.DIRECTORY:
            mode = 0o755
        else:
            mode = 0o644 if st.st_mode & stat_module.S_IWRITE else 0o444

        return FileEntry(
            name=os.path.basename(path) or path,
            path=path,
            kind=kind,
            size=size,
            mode=mode,
            user=_owner_name(st.st_uid),
            group=_group_name(st.st_gid),
            atime=datetime.fromtimestamp(st.st_atime),
            mtime=datetime.fromtimestamp(st.st_mtime),
            ctime=datetime.fromtimestamp(st.st_ctime),
            symlink_target=target,
        )

    def pwd(self) -> str:
        return self._wrkdir

    def change_dir(self, path: str) -> str:
        target = self.absolute(path)
        if not os.path.exists(target):
            raise IoError(IoErrorKind.NOT_FOUND, target)
        if not os.path.isdir(target):
            raise IoError(IoErrorKind.NOT_A_DIRECTORY, target)
        if not os.access(target, os.X_OK):
            raise IoError(IoErrorKind.PERMISSION_DENIED, target)
        self._wrkdir = target
        return self._wrkdir

    def list_dir(self, path: str) -> list[FileEntry]:
        directory = self.absolute(path)
        entries: list[FileEntry] = []
        try:
            with os.scandir(directory) as it:
                for item in it:
                    try:
                        st = item.stat(follow_symlinks=False)
                    except FileNotFoundError:
                        # Removed between readdir and lstat
                        continue
                    entries.append(self._to_entry(os.path.join(directory, item.name), st))
        except OSError as e:
            raise IoError.from_os_error(e, directory) from e
        return entries

    def stat(self, path: str) -> FileEntry:
        target = self.absolute(path)
        try:
            st = os.lstat(target)
        except OSError as e:
            raise IoError.from_os_error(e, target) from e
        return self._to_entry(target, st)

    def open_read(self, path: str, offset: int = 0) -> BinaryIO:
        target = self.absolute(path)
        try:
            handle = open(target, "rb")  # noqa: SIM115
            if offset:
                handle.seek(offset)
        except OSError as e:
            raise IoError.from_os_error(e, target) from e
        return self._wrap(ReadStream, handle, target)

    def open_write(
        self,
        path: str,
        size: int | None,
        offset: int = 0,
        mode: int | None = None,
    ) -> BinaryIO:
        target = self.absolute(path)
        try:
            if offset:
                handle = open(target, "r+b")  # noqa: SIM115
                handle.seek(offset)
                handle.truncate()
            else:
                handle = open(target, "wb")  # noqa: SIM115
            if mode is not None and HAS_UNIX_MODES:
                os.chmod(target, mode)
        except OSError as e:
            raise IoError.from_os_error(e, target) from e
        return self._wrap(WriteStream, handle, target)

    @staticmethod
    def _wrap(stream_cls: type[ReadStream] | type[WriteStream], handle: Any, target: str) -> Any:
        """Wrap an open file so disk errors (ENOSPC, EIO) surface as IoError."""
        return stream_cls(
            handle,
            on_close=lambda _stream: handle.close(),
            map_error=lambda e: IoError.from_os_error(e, target) if isinstance(e, OSError) else e,
            catch=(OSError,),
        )

    def mkdir(self, path: str, mode: int | None = None) -> None:
        target = self.absolute(path)
        try:
            os.mkdir(target, mode if mode is not None else 0o777)
        except OSError as e:
            raise IoError.from_os_error(e, target) from e

    def remove_file(self, path: str) -> None:
        target = self.absolute(path)
        try:
            os.remove(target)
        except OSError as e:
            raise IoError.from_os_error(e, target) from e

    def remove_dir(self, path: str) -> None:
        target = self.absolute(path)
        try:
            os.rmdir(target)
        except OSError as e:
            raise IoError.from_os_error(e, target) from e

    def rename(self, src: str, dst: str) -> None:
        source = self.absolute(src)
        try:
            os.replace(source, self.absolute(dst))
        except OSError as e:
            raise IoError.from_os_error(e, source) from e

    def copy(self, src: str, dst: str) -> None:
        source, destination = self.absolute(src), self.absolute(dst)
        try:
            if os.path.isdir(source) and not os.path.islink(source):
                shutil.copytree(source, destination, symlinks=True)
            else:
                shutil.copy2(source, destination, follow_symlinks=False)
        except OSError as e:
            raise IoError.from_os_error(e, source) from e

    def exec(self, command: str) -> str:
        logger.debug("Local exec in %s: %s", self._wrkdir, command)
        try:
            result = run_shell(command, cwd=self._wrkdir, timeout=self._exec_timeout)
        except subprocess.TimeoutExpired as e:
            raise IoError(IoErrorKind.OTHER, None, f"command timed out: {command}") from e
        except OSError as e:
            raise IoError.from_os_error(e) from e
        return result.output

    def join(self, base: str, *parts: str) -> str:
        return os.path.join(base, *parts)

    def dirname(self, path: str) -> str:
        parent = os.path.dirname(path)
        return parent or path

    def basename(self, path: str) -> str:
        return os.path.basename(path)

    def normpath(self, path: str) -> str:
        return os.path.normpath(path)
