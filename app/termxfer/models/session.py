"""Connection and session models.

This module defines the supported wire protocols, the parameters used
to open a connection, and the Session record held by the remote facade.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from termxfer.filetransfer.base import FileTransfer


class Protocol(str, Enum):
    """Supported file transfer protocols."""

    SFTP = "sftp"
    SCP = "scp"
    FTP = "ftp"
    FTPS = "ftps"

    @property
    def default_port(self) -> int:
        """Return the well-known port for this protocol."""
        if self in (Protocol.SFTP, Protocol.SCP):
            return 22
        return 21

    @property
    def is_ssh(self) -> bool:
        """Check if the protocol runs over SSH."""
        return self in (Protocol.SFTP, Protocol.SCP)


class AuthMethod(str, Enum):
    """Authentication method used to open a session."""

    PASSWORD = "password"
    KEY = "key"


@dataclass(slots=True)
class ConnectionParams:
    """Parameters required to open a remote session.

    Attributes:
        protocol: Wire protocol to use.
        address: Remote host name or IP address.
        port: Remote port.
        username: Login name; None lets the adapter decide (anonymous FTP).
        password: Password or key passphrase; never persisted in clear.
        directory: Initial working directory; None means remote home.
    """

    protocol: Protocol
    address: str
    port: int
    username: str | None = None
    password: str | None = field(default=None, repr=False)
    directory: str | None = None

    def __post_init__(self) -> None:
        """Validate connection parameters after initialization."""
        if not self.address:
            msg = "Address cannot be empty"
            raise ValueError(msg)
        if not (0 < self.port < 65536):
            msg = f"Port must be between 1 and 65535, got {self.port}"
            raise ValueError(msg)

    @property
    def display(self) -> str:
        """Return a ``protocol://user@host:port`` string without the password."""
        user = f"{self.username}@" if self.username else ""
        return f"{self.protocol.value}://{user}{self.address}:{self.port}"


@dataclass(slots=True)
class Session:
    """A live, authenticated connection to one remote endpoint.

    Attributes:
        protocol: Wire protocol of the session.
        host: Remote host.
        port: Remote port.
        username: Login name used.
        wrkdir: Remote working directory.
        auth_method: How the session authenticated.
        client: Connected transport handle.
        banner: Server banner or welcome message, if any.
    """

    protocol: Protocol
    host: str
    port: int
    username: str | None
    wrkdir: str
    auth_method: AuthMethod
    client: FileTransfer = field(repr=False)
    banner: str | None = None
