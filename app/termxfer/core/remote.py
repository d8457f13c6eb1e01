"""Remote filesystem facade.

RemoteFileSystem owns the single active session. It picks a wire
adapter at connect time and forwards every filesystem call to it. A
ConnectionLost raised by any call, or by a stream handed out earlier,
drops the session before propagating; reconnecting is left to the user.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, BinaryIO, TypeVar

from termxfer.filetransfer import build_file_transfer
from termxfer.filetransfer.base import FileSystem, FileTransfer
from termxfer.filetransfer.errors import ConnectionLost
from termxfer.models.entry import FileEntry
from termxfer.models.session import ConnectionParams, Protocol, Session
from termxfer.models.transfer import EndpointKind

if TYPE_CHECKING:
    from termxfer.core.sshkeys import SshKeyStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")

TransferFactory = Callable[[Protocol], FileTransfer]


class _GuardedStream(io.RawIOBase):
    """Stream proxy that drops the session when the transport fails."""

    def __init__(self, inner: BinaryIO, on_lost: Callable[[], None], readable: bool) -> None:
        super().__init__()
        self._inner = inner
        self._on_lost = on_lost
        self._readable = readable

    def readable(self) -> bool:
        return self._readable

    def writable(self) -> bool:
        return not self._readable

    def read(self, size: int = -1) -> bytes:  # type: ignore[override]
        try:
            return self._inner.read(size)
        except ConnectionLost:
            self._on_lost()
            raise

    def readinto(self, buffer: Any) -> int:
        data = self.read(len(buffer))
        buffer[: len(data)] = data
        return len(data)

    def write(self, data: Any) -> int:
        try:
            written = self._inner.write(data)
        except ConnectionLost:
            self._on_lost()
            raise
        return written if written is not None else len(data)

    def close(self) -> None:
        if self.closed:
            return
        try:
            self._inner.close()
        except ConnectionLost:
            self._on_lost()
            raise
        finally:
            super().close()


class RemoteFileSystem(FileSystem):
    """FileSystem facade over the active remote session.

    Example:
        >>> remote = RemoteFileSystem()
        >>> session = remote.connect(params)
        >>> remote.list_dir(session.wrkdir)
    """

    def __init__(
        self,
        key_storage: SshKeyStorage | None = None,
        connect_timeout: float = 30.0,
        factory: TransferFactory | None = None,
    ) -> None:
        """Initialize the facade without a session.

        Args:
            key_storage: SSH key lookup handed to SSH adapters.
            connect_timeout: Seconds allowed for connect and login.
            factory: Builds the adapter for a protocol; defaults to
                build_file_transfer().
        """
        self._key_storage = key_storage
        self._connect_timeout = connect_timeout
        self._factory = factory or self._default_factory
        self._session: Session | None = None

    def _default_factory(self, protocol: Protocol) -> FileTransfer:
        return build_file_transfer(protocol, self._key_storage, self._connect_timeout)

    @property
    def kind(self) -> EndpointKind:
        return EndpointKind.REMOTE

    @property
    def session(self) -> Session | None:
        """Return the active session, if any."""
        return self._session

    @property
    def supports_resume(self) -> bool:  # type: ignore[override]
        return self._session is not None and self._session.client.supports_resume

    def is_connected(self) -> bool:
        """Check if a session is active."""
        return self._session is not None

    def connect(self, params: ConnectionParams) -> Session:
        """Open a new session, tearing down the current one first.

        Raises:
            ConnectError: If the connection or login fails.
        """
        if self._session is not None:
            self.disconnect()
        client = self._factory(params.protocol)
        logger.info("Connecting to %s", params.display)
        self._session = client.connect(params)
        return self._session

    def disconnect(self) -> None:
        """Close the active session; a no-op without one."""
        session, self._session = self._session, None
        if session is None:
            return
        self._close_client(session)
        logger.info("Disconnected from %s", session.host)

    def _drop_session(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            logger.warning("Connection to %s lost", session.host)
            self._close_client(session)

    @staticmethod
    def _close_client(session: Session) -> None:
        try:
            session.client.disconnect()
        except (ConnectionLost, OSError) as e:
            logger.debug("Transport already gone while disconnecting: %s", e)

    def _client(self) -> FileTransfer:
        if self._session is None:
            raise ConnectionLost("Not connected")
        return self._session.client

    def _forward(self, call: Callable[[FileTransfer], T]) -> T:
        client = self._client()
        try:
            return call(client)
        except ConnectionLost:
            self._drop_session()
            raise

    # -- FileSystem -------------------------------------------------------------

    def pwd(self) -> str:
        return self._forward(lambda c: c.pwd())

    def change_dir(self, path: str) -> str:
        wrkdir = self._forward(lambda c: c.change_dir(path))
        if self._session is not None:
            self._session.wrkdir = wrkdir
        return wrkdir

    def list_dir(self, path: str) -> list[FileEntry]:
        return self._forward(lambda c: c.list_dir(path))

    def stat(self, path: str) -> FileEntry:
        return self._forward(lambda c: c.stat(path))

    def open_read(self, path: str, offset: int = 0) -> BinaryIO:
        inner = self._forward(lambda c: c.open_read(path, offset))
        stream = _GuardedStream(inner, self._drop_session, readable=True)
        return stream  # type: ignore[return-value]

    def open_write(
        self,
        path: str,
        size: int | None,
        offset: int = 0,
        mode: int | None = None,
    ) -> BinaryIO:
        inner = self._forward(lambda c: c.open_write(path, size, offset, mode))
        stream = _GuardedStream(inner, self._drop_session, readable=False)
        return stream  # type: ignore[return-value]

    def mkdir(self, path: str, mode: int | None = None) -> None:
        self._forward(lambda c: c.mkdir(path, mode))

    def remove(self, path: str, recursive: bool = False) -> None:
        self._forward(lambda c: c.remove(path, recursive))

    def remove_file(self, path: str) -> None:
        self._forward(lambda c: c.remove_file(path))

    def remove_dir(self, path: str) -> None:
        self._forward(lambda c: c.remove_dir(path))

    def rename(self, src: str, dst: str) -> None:
        self._forward(lambda c: c.rename(src, dst))

    def copy(self, src: str, dst: str) -> None:
        self._forward(lambda c: c.copy(src, dst))

    def exec(self, command: str) -> str:
        return self._forward(lambda c: c.exec(command))

    def resolve_symlink(self, entry: FileEntry) -> FileEntry:
        return self._forward(lambda c: c.resolve_symlink(entry))

    def exists(self, path: str) -> bool:
        return self._forward(lambda c: c.exists(path))
