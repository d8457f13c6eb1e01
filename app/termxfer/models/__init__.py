"""Data models for termxfer.

This module exports the core data structures used throughout the application.
"""

from termxfer.models.entry import EntryKind, FileEntry, is_root_path, mode_to_string
from termxfer.models.session import AuthMethod, ConnectionParams, Protocol, Session
from termxfer.models.transfer import (
    Conflict,
    ConflictDecision,
    EndpointKind,
    TransferJob,
    TransferProgress,
    TransferStatus,
)

__all__ = [
    "AuthMethod",
    "Conflict",
    "ConflictDecision",
    "ConnectionParams",
    "EndpointKind",
    "EntryKind",
    "FileEntry",
    "Protocol",
    "Session",
    "TransferJob",
    "TransferProgress",
    "TransferStatus",
    "is_root_path",
    "mode_to_string",
]
