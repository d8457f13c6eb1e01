"""Unit tests for transport stream wrappers."""

import io
from unittest.mock import MagicMock

import pytest
from termxfer.filetransfer.errors import ConnectionLost
from termxfer.filetransfer.streams import ReadStream, WriteStream


def _to_lost(exc: BaseException) -> BaseException:
    return ConnectionLost("Connection lost", str(exc))


class TestReadStream:
    """Tests for ReadStream."""

    def test_reads_all_data(self) -> None:
        """Without a limit the inner stream is read to its end."""
        stream = ReadStream(io.BytesIO(b"hello world"))
        assert stream.read() == b"hello world"
        assert stream.position == 11
        assert stream.eof

    def test_limit(self) -> None:
        """A limit stops delivery even if the transport has more."""
        stream = ReadStream(io.BytesIO(b"payload\x00trailer"), limit=7)
        assert stream.read() == b"payload"
        assert stream.eof

    def test_zero_limit_is_eof(self) -> None:
        """A zero-byte frame is immediately at EOF."""
        inner = MagicMock()
        stream = ReadStream(inner, limit=0)
        assert stream.read() == b""
        inner.read.assert_not_called()

    def test_error_mapping(self) -> None:
        """Transport errors are translated by the mapper."""
        inner = MagicMock()
        inner.read.side_effect = EOFError("socket closed")
        stream = ReadStream(inner, map_error=_to_lost)
        with pytest.raises(ConnectionLost):
            stream.read(10)

    def test_unmapped_error_propagates(self) -> None:
        """Without a mapper the original error is raised."""
        inner = MagicMock()
        inner.read.side_effect = OSError("boom")
        stream = ReadStream(inner)
        with pytest.raises(OSError, match="boom"):
            stream.read(10)

    def test_on_close_runs_once(self) -> None:
        """The finalizer runs on the first close only."""
        finalizer = MagicMock()
        stream = ReadStream(io.BytesIO(b"x"), on_close=finalizer)
        stream.close()
        stream.close()
        finalizer.assert_called_once_with(stream)
        assert stream.closed

    def test_on_close_error_still_closes(self) -> None:
        """A failing finalizer is mapped and the stream still closes."""
        finalizer = MagicMock(side_effect=OSError("ack missing"))
        stream = ReadStream(io.BytesIO(b""), on_close=finalizer, map_error=_to_lost)
        with pytest.raises(ConnectionLost):
            stream.close()
        assert stream.closed


class TestWriteStream:
    """Tests for WriteStream."""

    def test_write_counts_bytes(self) -> None:
        """Accepted bytes are forwarded and counted."""
        inner = io.BytesIO()
        stream = WriteStream(inner)
        assert stream.write(b"abc") == 3
        assert stream.write(bytearray(b"de")) == 2
        assert inner.getvalue() == b"abcde"
        assert stream.position == 5

    def test_write_error_mapping(self) -> None:
        """Transport write errors are translated by the mapper."""
        inner = MagicMock()
        inner.write.side_effect = OSError("broken pipe")
        stream = WriteStream(inner, map_error=_to_lost)
        with pytest.raises(ConnectionLost):
            stream.write(b"data")

    def test_context_manager_finalizes(self) -> None:
        """Leaving a with block runs the finalizer."""
        finalizer = MagicMock()
        with WriteStream(io.BytesIO(), on_close=finalizer) as stream:
            stream.write(b"x")
        finalizer.assert_called_once()
