"""SFTP adapter built on paramiko's SFTPClient."""

from __future__ import annotations

import logging
import shlex
import stat as stat_module
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import TYPE_CHECKING, BinaryIO

import paramiko

from termxfer.filetransfer.base import FileTransfer
from termxfer.filetransfer.errors import (
    ConnectionLost,
    IoError,
    IoErrorKind,
    TermxferError,
    kind_from_errno,
)
from termxfer.filetransfer.ssh import (
    TRANSPORT_ERRORS,
    io_error_from_message,
    is_active,
    open_ssh_connection,
    run_remote,
)
from termxfer.filetransfer.streams import ReadStream, WriteStream
from termxfer.models.entry import EntryKind, FileEntry
from termxfer.models.session import ConnectionParams, Protocol, Session

if TYPE_CHECKING:
    from termxfer.core.sshkeys import SshKeyStorage

logger = logging.getLogger(__name__)

_CATCH = (OSError, EOFError, paramiko.SSHException)


class SftpFileTransfer(FileTransfer):
    """FileTransfer over the SSH File Transfer Protocol.

    Attributes come from ``listdir_attr``/``lstat``; offsets are honoured
    through ``seek`` so interrupted transfers can resume.
    """

    supports_resume = True

    def __init__(
        self,
        key_storage: SshKeyStorage | None = None,
        connect_timeout: float = 30.0,
    ) -> None:
        self._key_storage = key_storage
        self._connect_timeout = connect_timeout
        self._client: paramiko.SSHClient | None = None
        self._sftp: paramiko.SFTPClient | None = None
        self._wrkdir = "/"
        self._user_names: dict[int, str] = {}
        self._group_names: dict[int, str] = {}

    @property
    def protocol(self) -> Protocol:
        return Protocol.SFTP

    def connect(self, params: ConnectionParams) -> Session:
        connection = open_ssh_connection(params, self._key_storage, self._connect_timeout)
        try:
            sftp = connection.client.open_sftp()
            self._wrkdir = sftp.normalize(".")
        except _CATCH as e:
            connection.client.close()
            raise ConnectionLost("SFTP subsystem unavailable", str(e)) from e

        self._client = connection.client
        self._sftp = sftp
        self._user_names.clear()
        self._group_names.clear()
        if params.directory:
            try:
                self.change_dir(params.directory)
            except TermxferError:
                self.disconnect()
                raise

        return Session(
            protocol=Protocol.SFTP,
            host=params.address,
            port=params.port,
            username=params.username,
            wrkdir=self._wrkdir,
            auth_method=connection.auth_method,
            client=self,
            banner=connection.banner,
        )

    def disconnect(self) -> None:
        if self._sftp is not None:
            try:
                self._sftp.close()
            except _CATCH as e:
                logger.debug("Error closing SFTP channel: %s", e)
            self._sftp = None
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("SFTP session closed")

    def is_connected(self) -> bool:
        return self._sftp is not None and is_active(self._client)

    # -- helpers ------------------------------------------------------------

    def _require(self) -> paramiko.SFTPClient:
        if self._sftp is None:
            raise ConnectionLost("Not connected")
        return self._sftp

    def _map_error(self, exc: BaseException, path: str | None = None) -> BaseException:
        if isinstance(exc, TermxferError):
            return exc
        if isinstance(exc, TRANSPORT_ERRORS) or not is_active(self._client):
            return ConnectionLost("Connection lost", str(exc))
        if isinstance(exc, OSError):
            if exc.errno is not None:
                return IoError(kind_from_errno(exc.errno), path, exc.strerror or str(exc))
            return io_error_from_message(str(exc), path)
        return IoError(IoErrorKind.OTHER, path, str(exc))

    @contextmanager
    def _translate(self, path: str | None = None) -> Iterator[None]:
        try:
            yield
        except _CATCH as e:
            raise self._map_error(e, path) from e

    def _to_entry(self, path: str, attr: paramiko.SFTPAttributes) -> FileEntry:
        mode = attr.st_mode or 0
        target: str | None = None
        if stat_module.S_ISDIR(mode):
            kind, size = EntryKind.DIRECTORY, None
        elif stat_module.S_ISLNK(mode):
            kind, size = EntryKind.SYMLINK, attr.st_size
            with self._translate(path):
                target = self._require().readlink(path) or ""
        else:
            kind, size = EntryKind.FILE, attr.st_size

        user: str | None = str(attr.st_uid) if attr.st_uid is not None else None
        group: str | None = str(attr.st_gid) if attr.st_gid is not None else None
        # longname is the server's own ls -l line and carries owner names;
        # lstat replies have none, so names seen in listings are reused.
        longname = getattr(attr, "longname", None)
        fields = longname.split(None, 4) if longname else []
        if len(fields) >= 4:
            user, group = fields[2], fields[3]
            if attr.st_uid is not None:
                self._user_names[attr.st_uid] = user
            if attr.st_gid is not None:
                self._group_names[attr.st_gid] = group
        else:
            if attr.st_uid is not None:
                user = self._user_names.get(attr.st_uid, user)
            if attr.st_gid is not None:
                group = self._group_names.get(attr.st_gid, group)

        return FileEntry(
            name=self.basename(path) or "/",
            path=path,
            kind=kind,
            size=size,
            mode=stat_module.S_IMODE(mode) if attr.st_mode is not None else None,
            user=user,
            group=group,
            atime=datetime.fromtimestamp(attr.st_atime) if attr.st_atime else None,
            mtime=datetime.fromtimestamp(attr.st_mtime) if attr.st_mtime else None,
            symlink_target=target,
        )

    # -- FileSystem ---------------------------------------------------------

    def pwd(self) -> str:
        self._require()
        return self._wrkdir

    def change_dir(self, path: str) -> str:
        sftp = self._require()
        target = self.absolute(path)
        with self._translate(target):
            attr = sftp.stat(target)
            if not stat_module.S_ISDIR(attr.st_mode or 0):
                raise IoError(IoErrorKind.NOT_A_DIRECTORY, target)
            self._wrkdir = sftp.normalize(target)
        logger.debug("SFTP working directory is now %s", self._wrkdir)
        return self._wrkdir

    def list_dir(self, path: str) -> list[FileEntry]:
        sftp = self._require()
        directory = self.absolute(path)
        with self._translate(directory):
            attrs = sftp.listdir_attr(directory)
        return [
            self._to_entry(self.join(directory, attr.filename), attr)
            for attr in attrs
            if attr.filename not in (".", "..")
        ]

    def stat(self, path: str) -> FileEntry:
        sftp = self._require()
        target = self.absolute(path)
        with self._translate(target):
            attr = sftp.lstat(target)
        return self._to_entry(target, attr)

    def open_read(self, path: str, offset: int = 0) -> BinaryIO:
        sftp = self._require()
        target = self.absolute(path)
        with self._translate(target):
            handle = sftp.open(target, "rb")
            if offset:
                handle.seek(offset)
            else:
                handle.prefetch()
        return ReadStream(  # type: ignore[return-value]
            handle,
            on_close=lambda _: handle.close(),
            map_error=lambda e: self._map_error(e, target),
            catch=_CATCH,
        )

    def open_write(
        self,
        path: str,
        size: int | None,
        offset: int = 0,
        mode: int | None = None,
    ) -> BinaryIO:
        sftp = self._require()
        target = self.absolute(path)
        with self._translate(target):
            handle = sftp.open(target, "r+b" if offset else "wb")
            if offset:
                handle.seek(offset)
            handle.set_pipelined(True)

        def finish(_: WriteStream) -> None:
            handle.close()
            if mode is not None:
                sftp.chmod(target, mode)

        return WriteStream(  # type: ignore[return-value]
            handle,
            on_close=finish,
            map_error=lambda e: self._map_error(e, target),
            catch=_CATCH,
        )

    def mkdir(self, path: str, mode: int | None = None) -> None:
        sftp = self._require()
        target = self.absolute(path)
        # Servers answer a generic failure for existing paths
        if self.exists(target):
            raise IoError(IoErrorKind.ALREADY_EXISTS, target)
        with self._translate(target):
            sftp.mkdir(target, mode if mode is not None else 0o755)

    def remove_file(self, path: str) -> None:
        sftp = self._require()
        target = self.absolute(path)
        with self._translate(target):
            sftp.remove(target)

    def remove_dir(self, path: str) -> None:
        sftp = self._require()
        target = self.absolute(path)
        with self._translate(target):
            sftp.rmdir(target)

    def rename(self, src: str, dst: str) -> None:
        sftp = self._require()
        source = self.absolute(src)
        with self._translate(source):
            sftp.rename(source, self.absolute(dst))

    def copy(self, src: str, dst: str) -> None:
        source, destination = self.absolute(src), self.absolute(dst)
        self._run_checked(f"cp -rf {shlex.quote(source)} {shlex.quote(destination)}", source)

    def exec(self, command: str) -> str:
        if self._client is None:
            raise ConnectionLost("Not connected")
        result = run_remote(self._client, command, self._wrkdir)
        return result.stdout + result.stderr

    def _run_checked(self, command: str, path: str) -> None:
        if self._client is None:
            raise ConnectionLost("Not connected")
        result = run_remote(self._client, command)
        if not result.success:
            raise io_error_from_message(result.stderr, path)
