"""Sequential queue of transfer jobs."""

from __future__ import annotations

import logging
import threading

from termxfer.core.transfer import ConflictResolver, ProgressCallback, TransferEngine
from termxfer.filetransfer.errors import ConnectionLost
from termxfer.models.transfer import TransferJob, TransferStatus

logger = logging.getLogger(__name__)


class TransferQueue:
    """Runs queued jobs one after another on a single engine.

    Jobs are appended from the explorer and run strictly in order. An
    abort stops the running job and every job still queued behind it.
    """

    def __init__(self, engine: TransferEngine | None = None) -> None:
        self._engine = engine or TransferEngine()
        self._jobs: list[TransferJob] = []
        self._lock = threading.Lock()
        self._running = False

    @property
    def engine(self) -> TransferEngine:
        """Return the engine jobs run on."""
        return self._engine

    @property
    def is_running(self) -> bool:
        """Check if the queue is currently running a job."""
        return self._running

    def enqueue(self, job: TransferJob) -> TransferJob:
        """Append a planned job."""
        with self._lock:
            self._jobs.append(job)
        logger.debug("Queued transfer %s (%s)", job.id, job.source.path)
        return job

    def jobs(self) -> list[TransferJob]:
        """Return all jobs, finished ones included."""
        with self._lock:
            return list(self._jobs)

    def pending(self) -> list[TransferJob]:
        """Return jobs that have not started yet."""
        with self._lock:
            return [job for job in self._jobs if job.status == TransferStatus.QUEUED]

    def clear_finished(self) -> int:
        """Drop jobs in a terminal state.

        Returns:
            Number of jobs removed.
        """
        with self._lock:
            before = len(self._jobs)
            self._jobs = [job for job in self._jobs if not job.status.is_terminal]
            return before - len(self._jobs)

    def abort(self) -> None:
        """Abort the running job and everything queued behind it."""
        self._engine.abort()

    def run(
        self,
        on_progress: ProgressCallback | None = None,
        resolve_conflict: ConflictResolver | None = None,
    ) -> list[TransferJob]:
        """Run every queued job in order.

        Returns:
            The jobs processed by this call, in order.

        Raises:
            ConnectionLost: After marking the current job failed and all
                remaining queued jobs aborted.
        """
        self._engine.reset()
        self._running = True
        processed: list[TransferJob] = []
        try:
            for job in self.pending():
                if self._engine.aborted:
                    job.abort()
                    processed.append(job)
                    continue
                processed.append(job)
                try:
                    self._engine.run(job, on_progress, resolve_conflict)
                except ConnectionLost as e:
                    for remaining in self.pending():
                        remaining.abort(f"Connection lost: {e.message}")
                    raise
        finally:
            self._running = False
        return processed
