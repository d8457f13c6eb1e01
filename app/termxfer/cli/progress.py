"""Transfer progress display and interruption handling.

The queue runs on a worker thread while the main thread renders a Rich
progress bar per top-level job. Ctrl-C on the main thread requests an
abort; the worker finishes its current chunk, closes the destination
cleanly and returns.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum

import typer
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from termxfer.explorer.state import Explorer
from termxfer.models.transfer import Conflict, ConflictDecision, TransferJob, TransferProgress
from termxfer.utils.formatting import console, print_warning

logger = logging.getLogger(__name__)


class ConflictPolicy(str, Enum):
    """What to do when a destination already exists."""

    ASK = "ask"
    OVERWRITE = "overwrite"
    SKIP = "skip"
    RESUME = "resume"


class _ProgressView:
    """Maps engine progress snapshots onto Rich progress tasks."""

    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._tasks: dict[str, TaskID] = {}
        self._lock = threading.Lock()

    def update(self, snapshot: TransferProgress) -> None:
        with self._lock:
            task = self._tasks.get(snapshot.job.id)
            if task is None:
                task = self._progress.add_task(snapshot.job.source.name, total=snapshot.total_bytes)
                self._tasks[snapshot.job.id] = task
        self._progress.update(
            task,
            completed=snapshot.transferred_bytes,
            total=snapshot.total_bytes,
            description=snapshot.current.source.name,
        )


class _ConflictPrompt:
    """Conflict resolver backed by a fixed policy or a prompt."""

    def __init__(self, policy: ConflictPolicy, progress: Progress) -> None:
        self._policy = policy
        self._progress = progress

    def __call__(self, conflict: Conflict) -> ConflictDecision:
        if self._policy == ConflictPolicy.RESUME:
            return ConflictDecision.RESUME if conflict.can_resume else ConflictDecision.OVERWRITE
        if self._policy != ConflictPolicy.ASK:
            return ConflictDecision(self._policy.value)

        choices = ["o", "s", "r"] if conflict.can_resume else ["o", "s"]
        label = "[o]verwrite, [s]kip" + (", [r]esume" if conflict.can_resume else "")
        self._progress.stop()
        try:
            answer = typer.prompt(f"{conflict.job.destination} exists. {label}", default="s")
        finally:
            self._progress.start()
        answer = answer.strip().lower()[:1]
        if answer not in choices:
            logger.info("Unrecognized answer %r, skipping %s", answer, conflict.job.destination)
            return ConflictDecision.SKIP
        return {"o": ConflictDecision.OVERWRITE, "r": ConflictDecision.RESUME}.get(
            answer, ConflictDecision.SKIP
        )


def run_transfers(
    explorer: Explorer,
    policy: ConflictPolicy = ConflictPolicy.ASK,
) -> list[TransferJob]:
    """Run the explorer's queue with a progress display.

    Args:
        explorer: Explorer with queued jobs.
        policy: How destination conflicts are resolved.

    Returns:
        The jobs processed.

    Raises:
        ConnectionLost: If the session dropped during the run.
    """
    progress = Progress(
        TextColumn("[progress]{task.description}", justify="left"),
        BarColumn(),
        DownloadColumn(),
        TransferSpeedColumn(),
        TimeRemainingColumn(),
        console=console,
        transient=True,
    )
    view = _ProgressView(progress)
    resolver = _ConflictPrompt(policy, progress)
    outcome: list[TransferJob] = []
    failure: list[BaseException] = []

    def worker() -> None:
        try:
            outcome.extend(explorer.run_transfers(view.update, resolver))
        except Exception as e:  # noqa: BLE001
            failure.append(e)

    thread = threading.Thread(target=worker, name="termxfer-transfer", daemon=True)
    with progress:
        thread.start()
        try:
            while thread.is_alive():
                thread.join(0.1)
        except KeyboardInterrupt:
            print_warning("Aborting transfers...")
            explorer.abort_transfers()
            thread.join()

    if failure:
        raise failure[0]
    return outcome
