"""Byte stream wrappers handed out by the wire adapters.

Adapters read and write through transport objects (paramiko files and
channels, ftplib data sockets) whose exceptions and close semantics
differ. These wrappers expose them as ordinary binary streams, map
transport errors into the shared taxonomy, and run a protocol-specific
finalizer on close.
"""

from __future__ import annotations

import io
from collections.abc import Callable
from typing import Any, Protocol

ErrorMapper = Callable[[BaseException], BaseException]


class _Readable(Protocol):
    def read(self, size: int, /) -> bytes: ...


class _Writable(Protocol):
    def write(self, data: bytes, /) -> Any: ...


def _passthrough(exc: BaseException) -> BaseException:
    return exc


class _WrappedStream(io.RawIOBase):
    """Shared close and error handling for the read and write wrappers."""

    def __init__(
        self,
        *,
        on_close: Callable[[Any], None] | None,
        map_error: ErrorMapper | None,
        catch: tuple[type[BaseException], ...],
    ) -> None:
        super().__init__()
        self._on_close = on_close
        self._map_error = map_error or _passthrough
        self._catch = catch
        self.position = 0

    def _raise_mapped(self, exc: BaseException) -> None:
        mapped = self._map_error(exc)
        if mapped is exc:
            raise exc
        raise mapped from exc

    def close(self) -> None:
        if self.closed:
            return
        try:
            if self._on_close is not None:
                try:
                    self._on_close(self)
                except self._catch as e:
                    self._raise_mapped(e)
        finally:
            super().close()


class ReadStream(_WrappedStream):
    """Readable stream over a transport object.

    Attributes:
        limit: Maximum number of bytes to deliver, if the protocol frames it.
        position: Bytes delivered so far.
        eof: Whether the end of the data was reached.
    """

    def __init__(
        self,
        inner: _Readable,
        *,
        limit: int | None = None,
        on_close: Callable[[ReadStream], None] | None = None,
        map_error: ErrorMapper | None = None,
        catch: tuple[type[BaseException], ...] = (OSError, EOFError),
    ) -> None:
        super().__init__(on_close=on_close, map_error=map_error, catch=catch)
        self._inner = inner
        self.limit = limit
        self.eof = limit == 0

    def readable(self) -> bool:
        return True

    def readinto(self, buffer: Any) -> int:
        view = memoryview(buffer).cast("B")
        wanted = len(view)
        if self.limit is not None:
            wanted = min(wanted, self.limit - self.position)
        if wanted <= 0 or self.eof:
            self.eof = True
            return 0
        try:
            data = self._inner.read(wanted)
        except self._catch as e:
            self._raise_mapped(e)
        if not data:
            self.eof = True
            return 0
        count = len(data)
        view[:count] = data
        self.position += count
        if self.limit is not None and self.position >= self.limit:
            self.eof = True
        return count


class WriteStream(_WrappedStream):
    """Writable stream over a transport object.

    Attributes:
        position: Bytes accepted so far.
    """

    def __init__(
        self,
        inner: _Writable,
        *,
        on_close: Callable[[WriteStream], None] | None = None,
        map_error: ErrorMapper | None = None,
        catch: tuple[type[BaseException], ...] = (OSError, EOFError),
    ) -> None:
        super().__init__(on_close=on_close, map_error=map_error, catch=catch)
        self._inner = inner

    def writable(self) -> bool:
        return True

    def write(self, data: Any) -> int:
        payload = bytes(data)
        try:
            self._inner.write(payload)
        except self._catch as e:
            self._raise_mapped(e)
        self.position += len(payload)
        return len(payload)
