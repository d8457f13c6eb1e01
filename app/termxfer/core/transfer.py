"""Transfer engine.

The engine streams bytes from a source FileSystem's read stream into a
destination FileSystem's write stream in fixed-size chunks. Directory
transfers are planned up front: the whole source tree is walked into a
flat list of file sub-jobs so the total size is known before any byte
moves, and the destination directories are created before the files.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from termxfer.filetransfer.base import CHUNK_SIZE, FileSystem
from termxfer.filetransfer.errors import ConnectionLost, IoError, IoErrorKind
from termxfer.models.entry import FileEntry
from termxfer.models.transfer import (
    Conflict,
    ConflictDecision,
    TransferJob,
    TransferProgress,
    TransferStatus,
)

logger = logging.getLogger(__name__)

PROGRESS_INTERVAL = 0.1

ProgressCallback = Callable[[TransferProgress], None]
ConflictResolver = Callable[[Conflict], ConflictDecision]


@dataclass(slots=True)
class _RunState:
    job: TransferJob
    started: float
    last_report: float
    on_progress: ProgressCallback | None
    resolve_conflict: ConflictResolver | None


class TransferEngine:
    """Plans and runs transfer jobs between two filesystems.

    Only one job runs at a time. ``abort()`` may be called from any
    thread; it is honoured between chunks and leaves partially written
    destination files in place.

    Example:
        >>> engine = TransferEngine()
        >>> job = engine.plan(remote, entry, local, local.pwd())
        >>> engine.run(job, on_progress=print)
    """

    def __init__(
        self,
        chunk_size: int = CHUNK_SIZE,
        progress_interval: float = PROGRESS_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._chunk_size = chunk_size
        self._progress_interval = progress_interval
        self._clock = clock
        self._abort = threading.Event()

    @property
    def aborted(self) -> bool:
        """Check if an abort was requested."""
        return self._abort.is_set()

    def abort(self) -> None:
        """Request cancellation of the running job."""
        logger.info("Transfer abort requested")
        self._abort.set()

    def reset(self) -> None:
        """Clear a previous abort request."""
        self._abort.clear()

    # -- planning ---------------------------------------------------------------

    def plan(
        self,
        source_fs: FileSystem,
        entry: FileEntry,
        dest_fs: FileSystem,
        dest_dir: str,
    ) -> TransferJob:
        """Build a job copying ``entry`` into ``dest_dir``.

        A symlink selected directly is transferred as its target. Inside
        a directory walk, symlinks to files are transferred as their
        target's content and symlinks to directories are skipped.

        Args:
            source_fs: Filesystem holding ``entry``.
            entry: File, directory or symlink to transfer.
            dest_fs: Destination filesystem.
            dest_dir: Destination directory on ``dest_fs``.

        Returns:
            A QUEUED job; directory jobs carry their sub-jobs.

        Raises:
            IoError: If the source tree cannot be walked.
        """
        destination = dest_fs.join(dest_dir, entry.name)
        source = source_fs.resolve_symlink(entry) if entry.is_symlink else entry
        job = TransferJob(
            source=source,
            source_kind=source_fs.kind,
            destination=destination,
            destination_kind=dest_fs.kind,
            source_fs=source_fs,
            destination_fs=dest_fs,
        )
        if not source.is_dir:
            job.total_bytes = source.size
            return job

        self._walk(source_fs, source.path, dest_fs, destination, job)
        sizes = [sub.total_bytes for sub in job.sub_jobs]
        known = [size for size in sizes if size is not None]
        job.total_bytes = sum(known) if len(known) == len(sizes) else None
        logger.debug(
            "Planned %s: %d files, %d directories, %s bytes",
            entry.path,
            len(job.sub_jobs),
            len(job.directories),
            job.total_bytes,
        )
        return job

    def _walk(
        self,
        source_fs: FileSystem,
        source_dir: str,
        dest_fs: FileSystem,
        dest_dir: str,
        job: TransferJob,
    ) -> None:
        job.directories.append(dest_dir)
        children = sorted(source_fs.list_dir(source_dir), key=lambda e: (e.name.lower(), e.name))
        for child in children:
            child_dest = dest_fs.join(dest_dir, child.name)
            if child.is_dir:
                self._walk(source_fs, child.path, dest_fs, child_dest, job)
                continue
            source = child
            if child.is_symlink:
                try:
                    source = source_fs.resolve_symlink(child)
                except IoError as e:
                    logger.info("Skipping broken symlink %s: %s", child.path, e)
                    continue
                if source.is_dir:
                    logger.debug("Skipping symlink to directory %s", child.path)
                    continue
            job.sub_jobs.append(
                TransferJob(
                    source=source,
                    source_kind=job.source_kind,
                    destination=child_dest,
                    destination_kind=job.destination_kind,
                    total_bytes=source.size,
                    source_fs=source_fs,
                    destination_fs=dest_fs,
                )
            )

    # -- execution --------------------------------------------------------------

    def run(
        self,
        job: TransferJob,
        on_progress: ProgressCallback | None = None,
        resolve_conflict: ConflictResolver | None = None,
    ) -> TransferJob:
        """Run a planned job to a terminal state.

        Args:
            job: Job returned by plan().
            on_progress: Receives throttled progress snapshots, and always
                one on completion of each file.
            resolve_conflict: Decides what to do with an existing
                destination. Without it existing files are skipped.

        Returns:
            The same job, in a terminal state.

        Raises:
            ConnectionLost: If either endpoint's connection drops. The
                current file is marked FAILED and the rest ABORTED.
        """
        if job.source_fs is None or job.destination_fs is None:
            msg = "Job has no filesystems attached; build it with plan()"
            raise ValueError(msg)

        now = self._clock()
        state = _RunState(
            job=job,
            started=now,
            last_report=now,
            on_progress=on_progress,
            resolve_conflict=resolve_conflict,
        )
        job.status = TransferStatus.IN_PROGRESS
        logger.info("Transferring %s -> %s", job.source.path, job.destination)

        try:
            if job.is_directory:
                self._run_directory(state)
            else:
                self._run_file(state, job)
        except ConnectionLost as e:
            job.abort(f"Connection lost: {e.message}")
            if job.is_directory:
                job.fail(f"Connection lost: {e.message}")
            raise

        logger.info("Transfer of %s finished: %s", job.source.path, job.status.value)
        return job

    def _run_directory(self, state: _RunState) -> None:
        job = state.job
        dest_fs = job.destination_fs
        assert dest_fs is not None
        for directory in job.directories:
            if self._abort.is_set():
                job.abort()
                return
            try:
                self._ensure_dir(dest_fs, directory)
            except IoError as e:
                reason = f"Cannot create {directory}: {e.message}"
                for sub in job.sub_jobs:
                    sub.fail(reason)
                job.fail(reason)
                return

        for sub in job.sub_jobs:
            if self._abort.is_set():
                break
            self._run_file(state, sub)

        if self._abort.is_set():
            job.abort()
            return
        failed = [sub for sub in job.sub_jobs if sub.status == TransferStatus.FAILED]
        if failed:
            job.fail(f"{len(failed)} of {len(job.sub_jobs)} files failed")
        elif job.sub_jobs and all(sub.status == TransferStatus.SKIPPED for sub in job.sub_jobs):
            job.status = TransferStatus.SKIPPED
        else:
            job.status = TransferStatus.COMPLETED
        self._report(state, job, force=True)

    @staticmethod
    def _ensure_dir(fs: FileSystem, path: str) -> None:
        try:
            fs.mkdir(path)
        except IoError as e:
            if e.kind != IoErrorKind.ALREADY_EXISTS:
                raise
            if not fs.resolve_symlink(fs.stat(path)).is_dir:
                raise IoError(IoErrorKind.NOT_A_DIRECTORY, path) from e

    def _find_existing(self, fs: FileSystem, path: str) -> FileEntry | None:
        try:
            return fs.stat(path)
        except IoError as e:
            if e.kind == IoErrorKind.NOT_FOUND:
                return None
            raise

    def _decide(self, state: _RunState, sub: TransferJob, existing: FileEntry) -> int | None:
        """Resolve a destination conflict.

        Returns:
            Offset to write from, or None to skip the file.
        """
        source_fs, dest_fs = sub.source_fs, sub.destination_fs
        assert source_fs is not None and dest_fs is not None
        can_resume = (
            existing.is_file
            and existing.size is not None
            and sub.total_bytes is not None
            and existing.size < sub.total_bytes
            and source_fs.supports_resume
            and dest_fs.supports_resume
        )
        if state.resolve_conflict is None:
            logger.info("Destination %s exists, skipping", sub.destination)
            return None
        conflict = Conflict(job=sub, existing=existing, can_resume=can_resume)
        decision = state.resolve_conflict(conflict)
        if decision == ConflictDecision.SKIP:
            return None
        if decision == ConflictDecision.RESUME:
            if can_resume:
                return existing.size
            logger.warning("Cannot resume %s, overwriting instead", sub.destination)
        if existing.is_dir:
            raise IoError(IoErrorKind.ALREADY_EXISTS, sub.destination, "destination is a directory")
        return 0

    def _run_file(self, state: _RunState, sub: TransferJob) -> None:
        source_fs, dest_fs = sub.source_fs, sub.destination_fs
        assert source_fs is not None and dest_fs is not None
        parent = state.job

        try:
            existing = self._find_existing(dest_fs, sub.destination)
            offset: int | None = 0
            if existing is not None:
                offset = self._decide(state, sub, existing)
            if offset is None:
                sub.status = TransferStatus.SKIPPED
                self._report(state, sub, force=True)
                return

            sub.status = TransferStatus.IN_PROGRESS
            self._account(parent, sub, offset)
            with source_fs.open_read(sub.source.path, offset) as reader:
                if self._abort.is_set():
                    sub.abort()
                    return
                mode = sub.source.mode
                writer = dest_fs.open_write(sub.destination, sub.total_bytes, offset, mode)
                with writer:
                    self._report(state, sub, force=True)
                    while not self._abort.is_set():
                        chunk = reader.read(self._chunk_size)
                        if not chunk:
                            break
                        writer.write(chunk)
                        self._account(parent, sub, len(chunk))
                        self._report(state, sub)
        except ConnectionLost as e:
            sub.fail(f"Connection lost: {e.message}")
            raise
        except IoError as e:
            logger.warning("Transfer of %s failed: %s", sub.source.path, e)
            sub.fail(str(e))
            return
        except OSError as e:
            # Filesystems that hand out unwrapped handles.
            error = IoError.from_os_error(e, sub.destination)
            logger.warning("Transfer of %s failed: %s", sub.source.path, error)
            sub.fail(str(error))
            return

        if self._abort.is_set():
            sub.abort()
            logger.info(
                "Transfer of %s aborted after %d bytes", sub.source.path, sub.transferred_bytes
            )
            return
        sub.status = TransferStatus.COMPLETED
        self._report(state, sub, force=True)

    @staticmethod
    def _account(parent: TransferJob, sub: TransferJob, count: int) -> None:
        sub.transferred_bytes += count
        if parent is not sub:
            parent.transferred_bytes += count

    def _report(self, state: _RunState, current: TransferJob, force: bool = False) -> None:
        if state.on_progress is None:
            return
        now = self._clock()
        if not force and now - state.last_report < self._progress_interval:
            return
        state.last_report = now
        state.on_progress(
            TransferProgress(
                job=state.job,
                current=current,
                transferred_bytes=state.job.transferred_bytes,
                total_bytes=state.job.total_bytes,
                elapsed=now - state.started,
            )
        )
