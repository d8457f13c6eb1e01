"""SSH connection helpers shared by the SFTP and SCP adapters."""

from __future__ import annotations

import io
import logging
import shlex
import socket
from dataclasses import dataclass
from typing import TYPE_CHECKING

import paramiko

from termxfer.filetransfer.errors import ConnectError, ConnectionLost, IoError, IoErrorKind
from termxfer.models.session import AuthMethod, ConnectionParams
from termxfer.utils.shell import CommandResult

if TYPE_CHECKING:
    from termxfer.core.sshkeys import SshKeyStorage

logger = logging.getLogger(__name__)

# Errors raised by paramiko or the socket layer once a session is open
TRANSPORT_ERRORS: tuple[type[BaseException], ...] = (
    paramiko.SSHException,
    EOFError,
    ConnectionError,
    socket.timeout,
)

_KEY_CLASSES: tuple[type[paramiko.PKey], ...] = (
    paramiko.Ed25519Key,
    paramiko.ECDSAKey,
    paramiko.RSAKey,
)

_STDERR_KINDS: tuple[tuple[str, IoErrorKind], ...] = (
    ("no such file", IoErrorKind.NOT_FOUND),
    ("permission denied", IoErrorKind.PERMISSION_DENIED),
    ("operation not permitted", IoErrorKind.PERMISSION_DENIED),
    ("not a directory", IoErrorKind.NOT_A_DIRECTORY),
    ("file exists", IoErrorKind.ALREADY_EXISTS),
    ("directory not empty", IoErrorKind.DIRECTORY_NOT_EMPTY),
    ("no space left", IoErrorKind.NO_SPACE),
    ("disk quota exceeded", IoErrorKind.NO_SPACE),
)


@dataclass(frozen=True, slots=True)
class SshConnection:
    """An authenticated SSH client and how it was obtained.

    Attributes:
        client: Connected paramiko client.
        auth_method: Whether a stored key or a password was used.
        banner: Server pre-auth banner, if any.
    """

    client: paramiko.SSHClient
    auth_method: AuthMethod
    banner: str | None


def load_private_key(blob: str, passphrase: str | None) -> paramiko.PKey:
    """Parse an OpenSSH/PEM private key blob.

    Args:
        blob: Private key text as stored in the key storage.
        passphrase: Passphrase for encrypted keys.

    Returns:
        Loaded paramiko key.

    Raises:
        ConnectError: If no supported key type accepts the blob.
    """
    last_error: Exception | None = None
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(blob), password=passphrase)
        except paramiko.PasswordRequiredException as e:
            raise ConnectError("Private key is encrypted", "passphrase required") from e
        except (paramiko.SSHException, ValueError) as e:
            last_error = e
    raise ConnectError("Unsupported private key", str(last_error) if last_error else None)


def open_ssh_connection(
    params: ConnectionParams,
    key_storage: SshKeyStorage | None,
    timeout: float,
) -> SshConnection:
    """Connect and authenticate an SSH client.

    A key stored for ``(address, username)`` takes precedence; the
    password then acts as the key passphrase. The timeout covers the TCP
    connect, banner and authentication phases only.

    Raises:
        ConnectError: If the host is unreachable or authentication fails.
    """
    pkey: paramiko.PKey | None = None
    if key_storage is not None and params.username:
        blob = key_storage.resolve(params.address, params.username)
        if blob is not None:
            logger.debug("Using stored key for %s@%s", params.username, params.address)
            pkey = load_private_key(blob, params.password)

    client = paramiko.SSHClient()
    client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
    try:
        client.connect(
            hostname=params.address,
            port=params.port,
            username=params.username,
            password=params.password,
            pkey=pkey,
            timeout=timeout,
            banner_timeout=timeout,
            auth_timeout=timeout,
            allow_agent=True,
            look_for_keys=pkey is None,
        )
    except paramiko.AuthenticationException as e:
        client.close()
        raise ConnectError("Authentication failed", str(e)) from e
    except (paramiko.SSHException, OSError, EOFError) as e:
        client.close()
        raise ConnectError(f"Could not connect to {params.address}:{params.port}", str(e)) from e

    banner: str | None = None
    transport = client.get_transport()
    if transport is not None:
        raw_banner = transport.get_banner()
        if raw_banner:
            banner = raw_banner.decode("utf-8", errors="replace").strip() or None

    logger.info("SSH session established with %s", params.display)
    return SshConnection(
        client=client,
        auth_method=AuthMethod.KEY if pkey is not None else AuthMethod.PASSWORD,
        banner=banner,
    )


def is_active(client: paramiko.SSHClient | None) -> bool:
    """Check if the client's transport is still up."""
    if client is None:
        return False
    transport = client.get_transport()
    return transport is not None and transport.is_active()


def run_remote(
    client: paramiko.SSHClient,
    command: str,
    wrkdir: str | None = None,
) -> CommandResult:
    """Run a shell command over an exec channel.

    Args:
        client: Connected SSH client.
        command: Shell command line.
        wrkdir: Directory to ``cd`` into first.

    Returns:
        CommandResult with decoded output and the exit status.

    Raises:
        ConnectionLost: If the transport fails.
    """
    if wrkdir is not None:
        command = f"cd {shlex.quote(wrkdir)}; {command}"
    logger.debug("Remote exec: %s", command)
    try:
        _, stdout, stderr = client.exec_command(command)
        out = stdout.read().decode("utf-8", errors="replace")
        err = stderr.read().decode("utf-8", errors="replace")
        status = stdout.channel.recv_exit_status()
    except TRANSPORT_ERRORS as e:
        raise ConnectionLost("Connection lost", str(e)) from e
    return CommandResult(stdout=out, stderr=err, returncode=status)


def io_error_from_message(message: str, path: str | None) -> IoError:
    """Classify a remote command's error output."""
    lowered = message.lower()
    for needle, kind in _STDERR_KINDS:
        if needle in lowered:
            return IoError(kind, path, message.strip() or None)
    return IoError(IoErrorKind.OTHER, path, message.strip() or None)
