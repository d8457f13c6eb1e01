"""SCP adapter built on paramiko exec channels.

SCP only moves file bodies, so every other filesystem operation is
synthesized with shell commands over the same SSH connection. Listings
come from ``ls -la`` run under the C locale and parsed by the shared
``ls -l`` parser.
"""

from __future__ import annotations

import dataclasses
import logging
import shlex
from typing import TYPE_CHECKING, BinaryIO

import paramiko

from termxfer.filetransfer.base import FileTransfer
from termxfer.filetransfer.errors import ConnectionLost, IoError, IoErrorKind, TermxferError
from termxfer.filetransfer.listing import parse_ls_line, parse_ls_output
from termxfer.filetransfer.ssh import (
    TRANSPORT_ERRORS,
    io_error_from_message,
    is_active,
    open_ssh_connection,
    run_remote,
)
from termxfer.filetransfer.streams import ReadStream, WriteStream
from termxfer.models.entry import FileEntry
from termxfer.models.session import ConnectionParams, Protocol, Session
from termxfer.utils.shell import CommandResult

if TYPE_CHECKING:
    from termxfer.core.sshkeys import SshKeyStorage

logger = logging.getLogger(__name__)

_LS_ENV = "LC_ALL=C LANG=C"
_ACK = b"\x00"


def _check_ack(stream: paramiko.ChannelFile, path: str) -> None:
    """Read one SCP acknowledgement byte.

    Raises:
        IoError: If the remote side reports a warning or a fatal error.
    """
    status = stream.read(1)
    if status == _ACK:
        return
    if not status:
        raise IoError(IoErrorKind.BAD_RESPONSE, path, "scp closed the channel")
    message = stream.readline().decode("utf-8", errors="replace")
    if status in (b"\x01", b"\x02"):
        raise io_error_from_message(message, path)
    raise IoError(IoErrorKind.BAD_RESPONSE, path, f"unexpected scp reply {status!r}")


def parse_scp_header(header: bytes, path: str) -> tuple[int, int]:
    """Parse an SCP ``C<mode> <size> <name>`` file header.

    Returns:
        Tuple of (mode, size).

    Raises:
        IoError: If the header is malformed or reports an error.
    """
    text = header.decode("utf-8", errors="replace").rstrip("\n")
    if text[:1] in ("\x01", "\x02"):
        raise io_error_from_message(text[1:], path)
    parts = text.split(" ", 2)
    if len(parts) != 3 or not parts[0].startswith("C"):
        raise IoError(IoErrorKind.BAD_RESPONSE, path, f"bad scp header {text!r}")
    try:
        return int(parts[0][1:], 8), int(parts[1])
    except ValueError as e:
        raise IoError(IoErrorKind.BAD_RESPONSE, path, f"bad scp header {text!r}") from e


class _ChannelWriter:
    """Write adapter so WriteStream can drive ``Channel.sendall``."""

    def __init__(self, channel: paramiko.Channel) -> None:
        self._channel = channel

    def write(self, data: bytes) -> None:
        self._channel.sendall(data)


class ScpFileTransfer(FileTransfer):
    """FileTransfer over SCP plus remote shell commands."""

    supports_resume = False

    def __init__(
        self,
        key_storage: SshKeyStorage | None = None,
        connect_timeout: float = 30.0,
    ) -> None:
        self._key_storage = key_storage
        self._connect_timeout = connect_timeout
        self._client: paramiko.SSHClient | None = None
        self._wrkdir = "/"

    @property
    def protocol(self) -> Protocol:
        return Protocol.SCP

    def connect(self, params: ConnectionParams) -> Session:
        connection = open_ssh_connection(params, self._key_storage, self._connect_timeout)
        self._client = connection.client
        try:
            result = self._run("pwd")
            if not result.success or not result.stdout.strip():
                raise IoError(IoErrorKind.BAD_RESPONSE, None, "could not read working directory")
            self._wrkdir = result.stdout.strip().splitlines()[0]
            if params.directory:
                self.change_dir(params.directory)
        except TermxferError:
            self.disconnect()
            raise

        return Session(
            protocol=Protocol.SCP,
            host=params.address,
            port=params.port,
            username=params.username,
            wrkdir=self._wrkdir,
            auth_method=connection.auth_method,
            client=self,
            banner=connection.banner,
        )

    def disconnect(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            logger.info("SCP session closed")

    def is_connected(self) -> bool:
        return is_active(self._client)

    # -- helpers ------------------------------------------------------------

    def _require(self) -> paramiko.SSHClient:
        if self._client is None:
            raise ConnectionLost("Not connected")
        return self._client

    def _run(self, command: str, wrkdir: str | None = None) -> CommandResult:
        return run_remote(self._require(), command, wrkdir)

    def _run_checked(self, command: str, path: str) -> CommandResult:
        result = self._run(command)
        if not result.success:
            raise io_error_from_message(result.stderr or result.stdout, path)
        return result

    def _open_channel(self, command: str) -> paramiko.Channel:
        client = self._require()
        transport = client.get_transport()
        if transport is None or not transport.is_active():
            raise ConnectionLost("Connection lost")
        try:
            channel = transport.open_session()
            channel.exec_command(command)
        except TRANSPORT_ERRORS as e:
            raise ConnectionLost("Connection lost", str(e)) from e
        return channel

    def _map_error(self, exc: BaseException, path: str) -> BaseException:
        if isinstance(exc, TermxferError):
            return exc
        return ConnectionLost("Connection lost", str(exc))

    # -- FileSystem ---------------------------------------------------------

    def pwd(self) -> str:
        self._require()
        return self._wrkdir

    def change_dir(self, path: str) -> str:
        target = self.absolute(path)
        result = self._run_checked(f"cd {shlex.quote(target)} && pwd", target)
        self._wrkdir = result.stdout.strip().splitlines()[0]
        logger.debug("SCP working directory is now %s", self._wrkdir)
        return self._wrkdir

    def list_dir(self, path: str) -> list[FileEntry]:
        directory = self.absolute(path)
        # Trailing slash lists a symlinked directory's content
        listed = directory.rstrip("/") + "/"
        result = self._run_checked(f"{_LS_ENV} ls -la {shlex.quote(listed)}", directory)
        return parse_ls_output(result.stdout.splitlines(), directory)

    def stat(self, path: str) -> FileEntry:
        target = self.absolute(path)
        result = self._run_checked(f"{_LS_ENV} ls -ld {shlex.quote(target)}", target)
        lines = [line for line in result.stdout.splitlines() if line.strip()]
        if not lines:
            raise IoError(IoErrorKind.BAD_RESPONSE, target, "empty ls output")
        entry = parse_ls_line(lines[0], self.dirname(target))
        if entry is None:
            raise IoError(IoErrorKind.UNSUPPORTED, target, "special file")
        # ls -ld echoes the queried path in the name column
        return dataclasses.replace(entry, name=self.basename(target) or "/", path=target)

    def open_read(self, path: str, offset: int = 0) -> BinaryIO:
        target = self.absolute(path)
        if offset:
            raise IoError(IoErrorKind.UNSUPPORTED, target, "scp cannot resume transfers")
        channel = self._open_channel(f"scp -f {shlex.quote(target)}")
        reader = channel.makefile("rb")
        try:
            channel.sendall(_ACK)
            _, size = parse_scp_header(reader.readline(), target)
            channel.sendall(_ACK)
        except TRANSPORT_ERRORS as e:
            channel.close()
            raise ConnectionLost("Connection lost", str(e)) from e
        except IoError:
            channel.close()
            raise

        def finish(stream: ReadStream) -> None:
            try:
                if stream.eof and stream.position == size:
                    _check_ack(reader, target)
                    channel.sendall(_ACK)
            finally:
                channel.close()

        return ReadStream(  # type: ignore[return-value]
            reader,
            limit=size,
            on_close=finish,
            map_error=lambda e: self._map_error(e, target),
            catch=TRANSPORT_ERRORS,
        )

    def open_write(
        self,
        path: str,
        size: int | None,
        offset: int = 0,
        mode: int | None = None,
    ) -> BinaryIO:
        target = self.absolute(path)
        if offset:
            raise IoError(IoErrorKind.UNSUPPORTED, target, "scp cannot resume transfers")
        if size is None:
            raise IoError(IoErrorKind.UNSUPPORTED, target, "scp requires the file size upfront")
        channel = self._open_channel(f"scp -t {shlex.quote(target)}")
        reader = channel.makefile("rb")
        bits = (mode if mode is not None else 0o644) & 0o7777
        header = f"C{bits:04o} {size} {self.basename(target)}\n"
        try:
            _check_ack(reader, target)
            channel.sendall(header.encode("utf-8"))
            _check_ack(reader, target)
        except TRANSPORT_ERRORS as e:
            channel.close()
            raise ConnectionLost("Connection lost", str(e)) from e
        except IoError:
            channel.close()
            raise

        def finish(stream: WriteStream) -> None:
            try:
                if stream.position == size:
                    channel.sendall(_ACK)
                    _check_ack(reader, target)
            finally:
                channel.close()

        return WriteStream(  # type: ignore[return-value]
            _ChannelWriter(channel),
            on_close=finish,
            map_error=lambda e: self._map_error(e, target),
            catch=TRANSPORT_ERRORS,
        )

    def mkdir(self, path: str, mode: int | None = None) -> None:
        target = self.absolute(path)
        command = f"mkdir {shlex.quote(target)}"
        if mode is not None:
            command = f"mkdir -m {mode & 0o7777:o} {shlex.quote(target)}"
        self._run_checked(command, target)

    def remove(self, path: str, recursive: bool = False) -> None:
        target = self.absolute(path)
        if recursive:
            self.stat(target)
            self._run_checked(f"rm -rf {shlex.quote(target)}", target)
            return
        super().remove(target)

    def remove_file(self, path: str) -> None:
        target = self.absolute(path)
        self._run_checked(f"rm -f {shlex.quote(target)}", target)

    def remove_dir(self, path: str) -> None:
        target = self.absolute(path)
        self._run_checked(f"rmdir {shlex.quote(target)}", target)

    def rename(self, src: str, dst: str) -> None:
        source, destination = self.absolute(src), self.absolute(dst)
        self._run_checked(f"mv -f {shlex.quote(source)} {shlex.quote(destination)}", source)

    def copy(self, src: str, dst: str) -> None:
        source, destination = self.absolute(src), self.absolute(dst)
        self._run_checked(f"cp -rf {shlex.quote(source)} {shlex.quote(destination)}", source)

    def exec(self, command: str) -> str:
        result = self._run(command, self._wrkdir)
        return result.stdout + result.stderr
