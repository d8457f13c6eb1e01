"""Filesystem abstraction and wire adapters.

This module exports the FileSystem interfaces, the error taxonomy and
the factory that picks a wire adapter for a protocol.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from termxfer.filetransfer.base import CHUNK_SIZE, FileSystem, FileTransfer
from termxfer.filetransfer.errors import (
    ConnectError,
    ConnectionLost,
    IoError,
    IoErrorKind,
    TermxferError,
    VaultError,
)
from termxfer.filetransfer.ftp import FtpFileTransfer
from termxfer.filetransfer.scp import ScpFileTransfer
from termxfer.filetransfer.sftp import SftpFileTransfer
from termxfer.models.session import Protocol

if TYPE_CHECKING:
    from termxfer.core.sshkeys import SshKeyStorage


def build_file_transfer(
    protocol: Protocol,
    key_storage: SshKeyStorage | None = None,
    connect_timeout: float = 30.0,
) -> FileTransfer:
    """Create the wire adapter for a protocol.

    Args:
        protocol: Protocol to speak.
        key_storage: SSH key lookup for SFTP and SCP.
        connect_timeout: Seconds allowed for connect and login.

    Returns:
        Unconnected FileTransfer instance.
    """
    if protocol == Protocol.SFTP:
        return SftpFileTransfer(key_storage, connect_timeout)
    if protocol == Protocol.SCP:
        return ScpFileTransfer(key_storage, connect_timeout)
    return FtpFileTransfer(secure=protocol == Protocol.FTPS, connect_timeout=connect_timeout)


__all__ = [
    "CHUNK_SIZE",
    "ConnectError",
    "ConnectionLost",
    "FileSystem",
    "FileTransfer",
    "FtpFileTransfer",
    "IoError",
    "IoErrorKind",
    "ScpFileTransfer",
    "SftpFileTransfer",
    "TermxferError",
    "VaultError",
    "build_file_transfer",
]
