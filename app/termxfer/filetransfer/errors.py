"""Error taxonomy shared by every filesystem adapter.

Adapters translate transport-specific failures (paramiko, ftplib, OS
errors) into these exceptions so callers never see wire details.
"""

import errno
from enum import Enum


class TermxferError(Exception):
    """Base exception for termxfer runtime errors.

    Attributes:
        message: Short, stable description.
        detail: Optional underlying cause for display or logging.
    """

    def __init__(self, message: str, detail: str | None = None) -> None:
        self.message = message
        self.detail = detail
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message


class ConnectError(TermxferError):
    """Raised when a session cannot be established or authenticated."""


class ConnectionLost(TermxferError):
    """Raised when the transport drops during an operation."""


class VaultError(TermxferError):
    """Raised when a credential cannot be encrypted or decrypted."""


class IoErrorKind(str, Enum):
    """Classification of filesystem operation failures."""

    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    ALREADY_EXISTS = "already_exists"
    NOT_A_DIRECTORY = "not_a_directory"
    DIRECTORY_NOT_EMPTY = "directory_not_empty"
    NO_SPACE = "no_space"
    UNSUPPORTED = "unsupported"
    BAD_RESPONSE = "bad_response"
    OTHER = "other"


_KIND_MESSAGES: dict[IoErrorKind, str] = {
    IoErrorKind.NOT_FOUND: "No such file or directory",
    IoErrorKind.PERMISSION_DENIED: "Permission denied",
    IoErrorKind.ALREADY_EXISTS: "File already exists",
    IoErrorKind.NOT_A_DIRECTORY: "Not a directory",
    IoErrorKind.DIRECTORY_NOT_EMPTY: "Directory not empty",
    IoErrorKind.NO_SPACE: "No space left on device",
    IoErrorKind.UNSUPPORTED: "Operation not supported",
    IoErrorKind.BAD_RESPONSE: "Bad response from server",
    IoErrorKind.OTHER: "I/O error",
}

_ERRNO_KINDS: dict[int, IoErrorKind] = {
    errno.ENOENT: IoErrorKind.NOT_FOUND,
    errno.EACCES: IoErrorKind.PERMISSION_DENIED,
    errno.EPERM: IoErrorKind.PERMISSION_DENIED,
    errno.EEXIST: IoErrorKind.ALREADY_EXISTS,
    errno.ENOTDIR: IoErrorKind.NOT_A_DIRECTORY,
    errno.ENOTEMPTY: IoErrorKind.DIRECTORY_NOT_EMPTY,
    errno.ENOSPC: IoErrorKind.NO_SPACE,
    errno.ENOSYS: IoErrorKind.UNSUPPORTED,
    errno.EOPNOTSUPP: IoErrorKind.UNSUPPORTED,
}


class IoError(TermxferError):
    """Raised when a filesystem operation fails.

    Attributes:
        kind: Failure classification.
        path: Path the operation was applied to, if known.
    """

    def __init__(
        self,
        kind: IoErrorKind,
        path: str | None = None,
        detail: str | None = None,
    ) -> None:
        self.kind = kind
        self.path = path
        message = _KIND_MESSAGES[kind]
        if path:
            message = f"{message}: {path}"
        super().__init__(message, detail)

    @classmethod
    def from_os_error(cls, exc: OSError, path: str | None = None) -> "IoError":
        """Build an IoError from an OSError, mapping errno to a kind.

        Args:
            exc: Original OS error.
            path: Path to report; defaults to the error's filename.

        Returns:
            Classified IoError.
        """
        kind = kind_from_errno(exc.errno)
        target = path if path is not None else exc.filename
        return cls(kind, str(target) if target is not None else None, exc.strerror)


def kind_from_errno(code: int | None) -> IoErrorKind:
    """Map an errno value to an IoErrorKind."""
    if code is None:
        return IoErrorKind.OTHER
    return _ERRNO_KINDS.get(code, IoErrorKind.OTHER)
