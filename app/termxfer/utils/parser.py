"""Remote address parsing.

Addresses follow ``[protocol://][username@]<address>[:port][:working-directory]``:

    sftp://user@10.0.0.5:22:/var/data
    ftp://anonymous@ftp.example.org
    backup.lan:/srv/backups
"""

import getpass
import logging
import re

from termxfer.models.session import ConnectionParams, Protocol

logger = logging.getLogger(__name__)

_ADDRESS_RE = re.compile(
    r"^(?:(?P<protocol>[A-Za-z]+)://)?"
    r"(?:(?P<username>[^@/]+)@)?"
    r"(?P<address>[^:@/]+)"
    r"(?::(?P<port>[0-9]{1,5}))?"
    r"(?::(?P<directory>.+))?$"
)


class AddressError(ValueError):
    """Raised when a remote address cannot be parsed."""


def default_username() -> str | None:
    """Return the name of the user running the process, if known."""
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        logger.debug("Cannot determine local user name")
        return None


def parse_protocol(value: str) -> Protocol:
    """Parse a protocol name case-insensitively.

    Raises:
        AddressError: If the protocol is not supported.
    """
    try:
        return Protocol(value.lower())
    except ValueError as e:
        supported = ", ".join(p.value for p in Protocol)
        msg = f"Unknown protocol '{value}' (expected one of: {supported})"
        raise AddressError(msg) from e


def parse_remote_address(
    value: str,
    default_protocol: Protocol = Protocol.SFTP,
) -> ConnectionParams:
    """Parse a remote address into connection parameters.

    Omitted parts take defaults: the protocol falls back to
    ``default_protocol``, the username to the local user, the port to the
    protocol's well-known port and the directory to the remote home.

    Args:
        value: Address string.
        default_protocol: Protocol used when the address has none.

    Returns:
        ConnectionParams without a password.

    Raises:
        AddressError: If the address is malformed.

    Example:
        >>> params = parse_remote_address("sftp://user@10.0.0.5:22:/var/data")
        >>> (params.address, params.port, params.directory)
        ('10.0.0.5', 22, '/var/data')
    """
    match = _ADDRESS_RE.match(value.strip())
    if match is None:
        msg = f"Invalid remote address: '{value}'"
        raise AddressError(msg)

    protocol = default_protocol
    if match.group("protocol"):
        protocol = parse_protocol(match.group("protocol"))

    port = protocol.default_port
    if match.group("port"):
        port = int(match.group("port"))
        if not 0 < port < 65536:
            msg = f"Port out of range in '{value}': {port}"
            raise AddressError(msg)

    return ConnectionParams(
        protocol=protocol,
        address=match.group("address"),
        port=port,
        username=match.group("username") or default_username(),
        directory=match.group("directory"),
    )
