"""Transfer job models.

This module defines the TransferJob state record driven by the transfer
engine, plus the conflict and progress structures it exchanges with
callers.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from termxfer.models.entry import FileEntry

if TYPE_CHECKING:
    from termxfer.filetransfer.base import FileSystem


class EndpointKind(str, Enum):
    """Which side of the explorer an endpoint belongs to."""

    LOCAL = "local"
    REMOTE = "remote"


class TransferStatus(str, Enum):
    """Lifecycle state of a transfer job.

    Attributes:
        QUEUED: Waiting to start.
        IN_PROGRESS: Bytes are moving; the only state with progress updates.
        COMPLETED: All bytes written.
        ABORTED: Cancelled by the user or by a lost connection.
        FAILED: Failed with a reason.
        SKIPPED: Destination existed and the user chose to skip it.
    """

    QUEUED = "queued"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ABORTED = "aborted"
    FAILED = "failed"
    SKIPPED = "skipped"

    @property
    def is_terminal(self) -> bool:
        """Check if the job can no longer change state."""
        return self not in (TransferStatus.QUEUED, TransferStatus.IN_PROGRESS)


class ConflictDecision(str, Enum):
    """User decision when the destination already exists."""

    OVERWRITE = "overwrite"
    SKIP = "skip"
    RESUME = "resume"


@dataclass(slots=True)
class TransferJob:
    """One queued or in-flight transfer.

    A directory transfer is a parent job whose ``sub_jobs`` hold the
    flattened file-level jobs computed by the pre-walk, and whose
    ``directories`` lists the destination directories to create first.

    Attributes:
        source: Entry being transferred.
        source_kind: Endpoint the source lives on.
        destination: Absolute destination path.
        destination_kind: Endpoint the destination lives on.
        total_bytes: Known size in bytes, None when unknown.
        transferred_bytes: Bytes written so far.
        status: Current lifecycle state.
        reason: Failure reason when status is FAILED or ABORTED.
        sub_jobs: Ordered file-level jobs of a directory transfer.
        directories: Destination directories to create, parents first.
        id: Unique identifier.
    """

    source: FileEntry
    source_kind: EndpointKind
    destination: str
    destination_kind: EndpointKind
    total_bytes: int | None = None
    transferred_bytes: int = 0
    status: TransferStatus = TransferStatus.QUEUED
    reason: str | None = None
    sub_jobs: list[TransferJob] = field(default_factory=list)
    directories: list[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    source_fs: FileSystem | None = field(default=None, repr=False, compare=False)
    destination_fs: FileSystem | None = field(default=None, repr=False, compare=False)

    @property
    def is_directory(self) -> bool:
        """Check if this job expands into sub-jobs."""
        return self.source.is_dir

    @property
    def percent(self) -> float | None:
        """Return completion percentage, or None when indeterminate."""
        if self.total_bytes is None:
            return None
        if self.total_bytes == 0:
            return 100.0
        return min(100.0, self.transferred_bytes * 100.0 / self.total_bytes)

    @property
    def failed(self) -> bool:
        """Check if the job failed."""
        return self.status == TransferStatus.FAILED

    def fail(self, reason: str) -> None:
        """Mark the job as failed with a reason."""
        self.status = TransferStatus.FAILED
        self.reason = reason

    def abort(self, reason: str = "Aborted by user") -> None:
        """Mark the job (and any unfinished sub-job) as aborted."""
        for sub_job in self.sub_jobs:
            if not sub_job.status.is_terminal:
                sub_job.abort(reason)
        if not self.status.is_terminal:
            self.status = TransferStatus.ABORTED
            self.reason = reason


@dataclass(frozen=True, slots=True)
class Conflict:
    """An existing destination found before a file transfer starts.

    Attributes:
        job: File-level job about to run.
        existing: Entry currently at the destination path.
        can_resume: Whether resuming from ``existing.size`` is possible.
    """

    job: TransferJob
    existing: FileEntry
    can_resume: bool


@dataclass(frozen=True, slots=True)
class TransferProgress:
    """Snapshot of transfer progress handed to the display layer.

    Attributes:
        job: Top-level job being run.
        current: File-level job currently moving bytes.
        transferred_bytes: Bytes written for the top-level job.
        total_bytes: Total bytes of the top-level job, None if unknown.
        elapsed: Seconds since the top-level job started.
    """

    job: TransferJob
    current: TransferJob
    transferred_bytes: int
    total_bytes: int | None
    elapsed: float

    @property
    def percent(self) -> float | None:
        """Return overall percentage, or None when indeterminate."""
        if self.total_bytes is None:
            return None
        if self.total_bytes == 0:
            return 100.0
        return min(100.0, self.transferred_bytes * 100.0 / self.total_bytes)

    @property
    def bytes_per_second(self) -> float:
        """Return the average transfer rate so far."""
        if self.elapsed <= 0:
            return 0.0
        return self.transferred_bytes / self.elapsed
