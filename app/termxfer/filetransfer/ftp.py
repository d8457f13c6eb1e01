"""FTP and FTPS adapter built on the standard library's ftplib."""

from __future__ import annotations

import ftplib
import logging
import ssl
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO

from termxfer.filetransfer.base import FileTransfer
from termxfer.filetransfer.errors import (
    ConnectError,
    ConnectionLost,
    IoError,
    IoErrorKind,
    TermxferError,
)
from termxfer.filetransfer.listing import entry_from_facts, parse_list_output
from termxfer.filetransfer.streams import ReadStream, WriteStream
from termxfer.models.entry import EntryKind, FileEntry, is_root_path
from termxfer.models.session import AuthMethod, ConnectionParams, Protocol, Session

logger = logging.getLogger(__name__)

_CATCH: tuple[type[BaseException], ...] = ftplib.all_errors

_PERM_KINDS: tuple[tuple[str, IoErrorKind], ...] = (
    ("permission", IoErrorKind.PERMISSION_DENIED),
    ("denied", IoErrorKind.PERMISSION_DENIED),
    ("exists", IoErrorKind.ALREADY_EXISTS),
    ("not a directory", IoErrorKind.NOT_A_DIRECTORY),
    ("not empty", IoErrorKind.DIRECTORY_NOT_EMPTY),
)


def map_ftp_error(exc: BaseException, path: str | None = None) -> BaseException:
    """Translate an ftplib failure into the shared error taxonomy.

    Args:
        exc: Exception raised by ftplib or the socket layer.
        path: Path the failing command targeted.

    Returns:
        Equivalent IoError or ConnectionLost.
    """
    if isinstance(exc, TermxferError):
        return exc
    message = str(exc)
    code = message[:3]
    if isinstance(exc, ftplib.error_perm):
        if code == "550":
            lowered = message.lower()
            for needle, kind in _PERM_KINDS:
                if needle in lowered:
                    return IoError(kind, path, message)
            return IoError(IoErrorKind.NOT_FOUND, path, message)
        if code == "552":
            return IoError(IoErrorKind.NO_SPACE, path, message)
        if code in ("500", "501", "502", "504"):
            return IoError(IoErrorKind.UNSUPPORTED, path, message)
        if code in ("530", "532"):
            return IoError(IoErrorKind.PERMISSION_DENIED, path, message)
        return IoError(IoErrorKind.OTHER, path, message)
    if isinstance(exc, ftplib.error_temp):
        if code == "421":
            return ConnectionLost("Connection lost", message)
        if code == "452":
            return IoError(IoErrorKind.NO_SPACE, path, message)
        if code == "450":
            return IoError(IoErrorKind.NOT_FOUND, path, message)
        return IoError(IoErrorKind.OTHER, path, message)
    if isinstance(exc, (ftplib.error_reply, ftplib.error_proto)):
        return IoError(IoErrorKind.BAD_RESPONSE, path, message)
    return ConnectionLost("Connection lost", message)


def parse_features(response: str) -> set[str]:
    """Extract feature names from a FEAT reply."""
    features: set[str] = set()
    for line in response.splitlines()[1:]:
        if line.startswith(" "):
            features.add(line.strip().split(" ", 1)[0].upper())
    return features


def parse_mlst_response(response: str) -> tuple[str, dict[str, str]]:
    """Split an MLST reply into the reported path and its facts.

    Raises:
        IoError: With kind BAD_RESPONSE if no fact line is present.
    """
    lines = response.splitlines()
    fact_line = next((line[1:] for line in lines[1:] if line.startswith(" ")), None)
    if fact_line is None:
        raise IoError(IoErrorKind.BAD_RESPONSE, None, f"bad MLST reply {response!r}")
    raw_facts, _, name = fact_line.partition(" ")
    facts: dict[str, str] = {}
    for fact in raw_facts.split(";"):
        key, sep, value = fact.partition("=")
        if sep:
            facts[key.lower()] = value
    return name, facts


class FtpFileTransfer(FileTransfer):
    """FileTransfer over FTP, optionally secured with explicit TLS.

    Passive mode and binary type are always used. With ``secure`` the
    control channel is upgraded with ``AUTH TLS`` before login and data
    channels are protected with ``PROT P``.
    """

    supports_resume = True

    def __init__(self, secure: bool = False, connect_timeout: float = 30.0) -> None:
        self._secure = secure
        self._connect_timeout = connect_timeout
        self._ftp: ftplib.FTP | None = None
        self._wrkdir = "/"
        self._use_mlsd = False
        self._use_mlst = False

    @property
    def protocol(self) -> Protocol:
        return Protocol.FTPS if self._secure else Protocol.FTP

    def connect(self, params: ConnectionParams) -> Session:
        tls: ftplib.FTP_TLS | None = None
        if self._secure:
            tls = ftplib.FTP_TLS(timeout=self._connect_timeout)
            ftp: ftplib.FTP = tls
        else:
            ftp = ftplib.FTP(timeout=self._connect_timeout)
        ftp.encoding = "utf-8"

        try:
            ftp.connect(params.address, params.port)
        except _CATCH as e:
            ftp.close()
            msg = f"Could not connect to {params.address}:{params.port}"
            raise ConnectError(msg, str(e)) from e

        try:
            # Credentials only travel once the control channel is encrypted
            if tls is not None:
                tls.auth()
            ftp.login(params.username or "", params.password or "")
            if tls is not None:
                tls.prot_p()
            ftp.set_pasv(True)
            ftp.voidcmd("TYPE I")
        except (ftplib.error_perm, ftplib.error_temp) as e:
            ftp.close()
            raise ConnectError("Authentication failed", str(e)) from e
        except _CATCH as e:
            ftp.close()
            msg = f"Could not connect to {params.address}:{params.port}"
            raise ConnectError(msg, str(e)) from e

        # The connect timeout covers login only; transfers may block indefinitely
        ftp.timeout = None
        if ftp.sock is not None:
            ftp.sock.settimeout(None)

        self._ftp = ftp
        try:
            self._detect_features()
            self._wrkdir = ftp.pwd()
            if params.directory:
                self.change_dir(params.directory)
        except _CATCH as e:
            self.disconnect()
            raise map_ftp_error(e) from e
        except TermxferError:
            self.disconnect()
            raise

        logger.info("FTP session established with %s", params.display)
        return Session(
            protocol=self.protocol,
            host=params.address,
            port=params.port,
            username=params.username,
            wrkdir=self._wrkdir,
            auth_method=AuthMethod.PASSWORD,
            client=self,
            banner=ftp.getwelcome() or None,
        )

    def _detect_features(self) -> None:
        ftp = self._require()
        try:
            features = parse_features(ftp.sendcmd("FEAT"))
        except ftplib.error_perm:
            logger.debug("Server does not support FEAT, using LIST")
            features = set()
        self._use_mlsd = "MLSD" in features or "MLST" in features
        self._use_mlst = "MLST" in features

    def disconnect(self) -> None:
        if self._ftp is None:
            return
        try:
            self._ftp.quit()
        except _CATCH as e:
            logger.debug("QUIT failed, closing socket: %s", e)
            self._ftp.close()
        self._ftp = None
        logger.info("FTP session closed")

    def is_connected(self) -> bool:
        return self._ftp is not None and self._ftp.sock is not None

    # -- helpers ------------------------------------------------------------

    def _require(self) -> ftplib.FTP:
        if self._ftp is None:
            raise ConnectionLost("Not connected")
        return self._ftp

    @contextmanager
    def _translate(self, path: str | None = None) -> Iterator[None]:
        try:
            yield
        except _CATCH as e:
            raise map_ftp_error(e, path) from e

    @staticmethod
    def _close_data(conn: object, clean: bool = True) -> None:
        if clean and isinstance(conn, ssl.SSLSocket):
            conn.unwrap()
        conn.close()  # type: ignore[attr-defined]

    def _root_entry(self) -> FileEntry:
        return FileEntry(name="/", path="/", kind=EntryKind.DIRECTORY)

    # -- FileSystem ---------------------------------------------------------

    def pwd(self) -> str:
        self._require()
        return self._wrkdir

    def change_dir(self, path: str) -> str:
        ftp = self._require()
        target = self.absolute(path)
        with self._translate(target):
            ftp.cwd(target)
            self._wrkdir = ftp.pwd()
        logger.debug("FTP working directory is now %s", self._wrkdir)
        return self._wrkdir

    def list_dir(self, path: str) -> list[FileEntry]:
        ftp = self._require()
        directory = self.absolute(path)
        with self._translate(directory):
            ftp.cwd(directory)
            if self._use_mlsd:
                try:
                    entries = [
                        entry_from_facts(name, facts, directory) for name, facts in ftp.mlsd()
                    ]
                    return [entry for entry in entries if entry is not None]
                except ftplib.error_perm as e:
                    if str(e)[:3] not in ("500", "501", "502", "504"):
                        raise
                    logger.info("MLSD rejected by server, falling back to LIST")
                    self._use_mlsd = False
            lines: list[str] = []
            try:
                ftp.retrlines("LIST -a", lines.append)
            except ftplib.error_perm:
                logger.debug("LIST -a rejected, retrying plain LIST")
                lines.clear()
                ftp.retrlines("LIST", lines.append)
        return parse_list_output(lines, directory)

    def stat(self, path: str) -> FileEntry:
        ftp = self._require()
        target = self.absolute(path)
        if is_root_path(target):
            return self._root_entry()
        if self._use_mlst:
            with self._translate(target):
                _, facts = parse_mlst_response(ftp.sendcmd(f"MLST {target}"))
            if facts.get("type", "").lower() in ("cdir", "pdir"):
                facts["type"] = "dir"
            entry = entry_from_facts(self.basename(target), facts, self.dirname(target))
            if entry is not None:
                return entry
        name = self.basename(target)
        for entry in self.list_dir(self.dirname(target)):
            if entry.name == name:
                return entry
        raise IoError(IoErrorKind.NOT_FOUND, target)

    def open_read(self, path: str, offset: int = 0) -> BinaryIO:
        ftp = self._require()
        target = self.absolute(path)
        with self._translate(target):
            conn = ftp.transfercmd(f"RETR {target}", rest=offset or None)

        def finish(stream: ReadStream) -> None:
            self._close_data(conn, clean=stream.eof)
            if stream.eof:
                ftp.voidresp()
                return
            # Closing the data channel early makes the server answer 426/451
            try:
                ftp.voidresp()
            except (ftplib.error_temp, ftplib.error_reply) as e:
                logger.debug("Aborted download of %s: %s", target, e)

        return ReadStream(  # type: ignore[return-value]
            _SocketReader(conn),
            on_close=finish,
            map_error=lambda e: map_ftp_error(e, target),
            catch=_CATCH,
        )

    def open_write(
        self,
        path: str,
        size: int | None,
        offset: int = 0,
        mode: int | None = None,
    ) -> BinaryIO:
        ftp = self._require()
        target = self.absolute(path)
        if mode is not None:
            logger.debug("FTP does not carry permissions, ignoring mode for %s", target)
        with self._translate(target):
            conn = ftp.transfercmd(f"STOR {target}", rest=offset or None)

        def finish(_: WriteStream) -> None:
            self._close_data(conn)
            ftp.voidresp()

        return WriteStream(  # type: ignore[return-value]
            _SocketWriter(conn),
            on_close=finish,
            map_error=lambda e: map_ftp_error(e, target),
            catch=_CATCH,
        )

    def mkdir(self, path: str, mode: int | None = None) -> None:
        ftp = self._require()
        target = self.absolute(path)
        if self.exists(target):
            raise IoError(IoErrorKind.ALREADY_EXISTS, target)
        with self._translate(target):
            ftp.mkd(target)

    def remove_file(self, path: str) -> None:
        ftp = self._require()
        target = self.absolute(path)
        with self._translate(target):
            ftp.delete(target)

    def remove_dir(self, path: str) -> None:
        ftp = self._require()
        target = self.absolute(path)
        with self._translate(target):
            ftp.rmd(target)

    def rename(self, src: str, dst: str) -> None:
        ftp = self._require()
        source = self.absolute(src)
        with self._translate(source):
            ftp.rename(source, self.absolute(dst))


class _SocketReader:
    """Read adapter for an ftplib data connection."""

    def __init__(self, conn: object) -> None:
        self._conn = conn

    def read(self, size: int) -> bytes:
        return self._conn.recv(size)  # type: ignore[attr-defined, no-any-return]


class _SocketWriter:
    """Write adapter for an ftplib data connection."""

    def __init__(self, conn: object) -> None:
        self._conn = conn

    def write(self, data: bytes) -> None:
        self._conn.sendall(data)  # type: ignore[attr-defined]
