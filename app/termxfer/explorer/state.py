"""Dual-pane explorer state machine.

The Explorer owns the local pane, the remote pane (while a session is
open) and which of the two has focus. Every operation acts on the
focused pane; transfers go from the focused pane to the other pane's
current directory.
"""

from __future__ import annotations

import fnmatch
import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass

from termxfer.core.queue import TransferQueue
from termxfer.core.remote import RemoteFileSystem
from termxfer.core.transfer import ConflictResolver, ProgressCallback
from termxfer.explorer.formatter import Formatter
from termxfer.explorer.pane import DirectoryStack, PaneState
from termxfer.explorer.sorting import GroupDirs, SortKey
from termxfer.filetransfer.base import FileSystem
from termxfer.filetransfer.errors import ConnectionLost, IoError, IoErrorKind
from termxfer.models.entry import FileEntry
from termxfer.models.session import ConnectionParams, Session
from termxfer.models.transfer import EndpointKind, TransferJob

logger = logging.getLogger(__name__)


class ConfirmationRequired(Exception):
    """Raised when a delete would remove non-empty directories.

    Attributes:
        entries: Non-empty directories that need explicit confirmation.
    """

    def __init__(self, entries: list[FileEntry]) -> None:
        self.entries = entries
        names = ", ".join(e.name for e in entries)
        super().__init__(f"Directories are not empty: {names}")


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Result of a single file operation.

    Attributes:
        path: Path that was operated on.
        success: Whether the operation completed successfully.
        error: Error message if the operation failed, None otherwise.
    """

    path: str
    success: bool
    error: str | None = None


class Explorer:
    """Drives navigation, selection and transfers across both panes.

    Example:
        >>> explorer = Explorer(LocalFileSystem(), RemoteFileSystem())
        >>> explorer.open_remote(params)
        >>> explorer.navigate_to("/var/data")
        >>> explorer.select_all()
        >>> explorer.enqueue_transfer()
        >>> explorer.run_transfers()
    """

    def __init__(
        self,
        local: FileSystem,
        remote: RemoteFileSystem,
        *,
        queue: TransferQueue | None = None,
        local_formatter: Formatter | None = None,
        remote_formatter: Formatter | None = None,
        sort_key: SortKey = SortKey.NAME,
        group_dirs: GroupDirs = GroupDirs.FIRST,
        show_hidden: bool = False,
    ) -> None:
        """Create the explorer with the local pane loaded.

        Raises:
            IoError: If the local working directory cannot be listed.
        """
        self.remote = remote
        self.queue = queue or TransferQueue()
        self._remote_formatter = remote_formatter or Formatter()
        self._sort_key = sort_key
        self._group_dirs = group_dirs
        self._show_hidden = show_hidden
        self.local_pane = self._new_pane(local, local.pwd(), local_formatter or Formatter())
        self.local_pane.load()
        self.remote_pane: PaneState | None = None
        self.focus = EndpointKind.LOCAL

    def _new_pane(self, fs: FileSystem, wrkdir: str, formatter: Formatter) -> PaneState:
        return PaneState(
            fs=fs,
            stack=DirectoryStack(wrkdir),
            formatter=formatter,
            sort_key=self._sort_key,
            group_dirs=self._group_dirs,
            show_hidden=self._show_hidden,
        )

    # -- panes ----------------------------------------------------------------

    def pane(self, side: EndpointKind) -> PaneState:
        """Return the pane for a side.

        Raises:
            ConnectionLost: If the remote pane is requested without a session.
        """
        if side == EndpointKind.LOCAL:
            return self.local_pane
        if self.remote_pane is None:
            raise ConnectionLost("Not connected")
        return self.remote_pane

    @property
    def focused(self) -> PaneState:
        """Return the focused pane."""
        return self.pane(self.focus)

    @property
    def other(self) -> PaneState:
        """Return the pane without focus."""
        other_side = EndpointKind.REMOTE if self.focus == EndpointKind.LOCAL else EndpointKind.LOCAL
        return self.pane(other_side)

    def switch_focus(self, side: EndpointKind | None = None) -> EndpointKind:
        """Focus a side, or toggle focus when ``side`` is None.

        Raises:
            ConnectionLost: If the remote side is focused without a session.
        """
        if side is None:
            side = EndpointKind.REMOTE if self.focus == EndpointKind.LOCAL else EndpointKind.LOCAL
        self.pane(side)
        self.focus = side
        return side

    @contextmanager
    def _guard(self) -> Iterator[None]:
        """Reset the remote pane when the session drops."""
        try:
            yield
        except ConnectionLost:
            if self.remote_pane is not None:
                logger.warning("Remote session lost, closing remote pane")
                self.remote_pane = None
                self.focus = EndpointKind.LOCAL
            raise

    # -- session --------------------------------------------------------------

    def open_remote(self, params: ConnectionParams) -> Session:
        """Connect and create the remote pane at the session's directory.

        Raises:
            ConnectError: If the connection fails.
        """
        self.remote_pane = None
        session = self.remote.connect(params)
        pane = self._new_pane(self.remote, session.wrkdir, self._remote_formatter)
        self.remote_pane = pane
        self.focus = EndpointKind.REMOTE
        with self._guard():
            pane.load()
        return session

    def close_remote(self) -> None:
        """Disconnect and drop the remote pane."""
        self.remote.disconnect()
        self.remote_pane = None
        self.focus = EndpointKind.LOCAL

    # -- navigation -----------------------------------------------------------

    def _enter(self, pane: PaneState, path: str, commit: Callable[[str], None]) -> str:
        """List ``path`` and only then commit the stack change."""
        previous = pane.cwd
        wrkdir = pane.fs.change_dir(path)
        try:
            entries = pane.fs.list_dir(wrkdir)
        except IoError:
            pane.fs.change_dir(previous)
            raise
        commit(wrkdir)
        pane.entries = entries
        pane.selection.clear()
        pane.refresh()
        return wrkdir

    def navigate_into(self, entry: FileEntry) -> str:
        """Enter a directory (or a symlink to one) of the focused pane.

        Returns:
            The new current directory.

        Raises:
            IoError: With kind NOT_A_DIRECTORY for files.
        """
        with self._guard():
            pane = self.focused
            target = pane.fs.resolve_symlink(entry) if entry.is_symlink else entry
            if not target.is_dir:
                raise IoError(IoErrorKind.NOT_A_DIRECTORY, entry.path)
            return self._enter(pane, entry.path, pane.stack.push)

    def navigate_up(self) -> str:
        """Return to the previous directory of the focused pane.

        At the bottom of the history this moves to the parent directory
        instead; at the filesystem root it does nothing.

        Returns:
            The current directory after the move.
        """
        with self._guard():
            pane = self.focused
            previous = pane.stack.previous
            if previous is not None:
                return self._enter(pane, previous, lambda _: pane.stack.pop())
            parent = pane.fs.dirname(pane.cwd)
            if parent == pane.cwd:
                return pane.cwd
            return self._enter(pane, parent, pane.stack.replace)

    def navigate_forward(self) -> str | None:
        """Revisit the directory most recently left with navigate_up().

        Returns:
            The new current directory, or None if there is nothing to revisit.
        """
        with self._guard():
            pane = self.focused
            target = pane.stack.next
            if target is None:
                return None
            return self._enter(pane, target, lambda _: pane.stack.forward())

    def navigate_to(self, path: str) -> str:
        """Jump to ``path`` in the focused pane, clearing the forward stack."""
        with self._guard():
            pane = self.focused
            return self._enter(pane, pane.fs.absolute(path), pane.stack.push)

    def reload(self) -> None:
        """Re-list the focused pane, keeping the selection where possible."""
        with self._guard():
            self.focused.load()

    def _reload_quietly(self, pane: PaneState | None) -> None:
        if pane is None:
            return
        try:
            pane.load()
        except IoError as e:
            logger.warning("Cannot reload %s: %s", pane.cwd, e)

    # -- view -----------------------------------------------------------------

    def toggle_hidden(self) -> bool:
        """Show or hide dot-files in the focused pane.

        Returns:
            The new visibility flag.
        """
        pane = self.focused
        pane.show_hidden = not pane.show_hidden
        pane.refresh()
        return pane.show_hidden

    def change_sort_key(self, key: SortKey, group_dirs: GroupDirs | None = None) -> None:
        """Reorder the focused pane."""
        pane = self.focused
        pane.sort_key = key
        if group_dirs is not None:
            pane.group_dirs = group_dirs
        pane.refresh()

    # -- selection ------------------------------------------------------------

    def toggle_selection(self, entries: Sequence[FileEntry]) -> set[str]:
        """Flip the selection state of visible entries.

        Returns:
            The selection after the change.
        """
        pane = self.focused
        visible = {e.path for e in pane.listing}
        for entry in entries:
            if entry.path not in visible:
                continue
            if entry.path in pane.selection:
                pane.selection.discard(entry.path)
            else:
                pane.selection.add(entry.path)
        return set(pane.selection)

    def select_all(self) -> None:
        """Select every visible entry of the focused pane."""
        pane = self.focused
        pane.selection = {e.path for e in pane.listing}

    def clear_selection(self) -> None:
        """Deselect everything in the focused pane."""
        self.focused.selection.clear()

    def _targets(self, pane: PaneState, entries: Sequence[FileEntry] | None) -> list[FileEntry]:
        if entries is not None:
            return list(entries)
        return pane.selected_entries()

    def search(self, pattern: str) -> list[FileEntry]:
        """Match a wildcard pattern against the focused pane's listing.

        Matching is case-insensitive and limited to the current listing.
        """
        lowered = pattern.lower()
        return [e for e in self.focused.listing if fnmatch.fnmatchcase(e.name.lower(), lowered)]

    # -- transfers ------------------------------------------------------------

    def enqueue_transfer(self, entries: Sequence[FileEntry] | None = None) -> list[TransferJob]:
        """Queue a transfer of entries from the focused pane to the other.

        Args:
            entries: Entries to send; defaults to the focused selection.

        Returns:
            The queued jobs.

        Raises:
            ConnectionLost: Without a remote session.
        """
        with self._guard():
            source, destination = self.focused, self.other
            jobs: list[TransferJob] = []
            for entry in self._targets(source, entries):
                job = self.queue.engine.plan(source.fs, entry, destination.fs, destination.cwd)
                jobs.append(self.queue.enqueue(job))
            source.selection.clear()
            return jobs

    def run_transfers(
        self,
        on_progress: ProgressCallback | None = None,
        resolve_conflict: ConflictResolver | None = None,
    ) -> list[TransferJob]:
        """Run queued transfers, then reload both panes.

        Raises:
            ConnectionLost: If the session drops; the remote pane is reset.
        """
        with self._guard():
            try:
                jobs = self.queue.run(on_progress, resolve_conflict)
            finally:
                self._reload_quietly(self.local_pane)
            self._reload_quietly(self.remote_pane)
        return jobs

    def abort_transfers(self) -> None:
        """Abort the running transfer and everything queued behind it."""
        self.queue.abort()

    # -- file operations ------------------------------------------------------

    def delete(
        self,
        entries: Sequence[FileEntry] | None = None,
        recursive: bool = False,
    ) -> list[OperationResult]:
        """Delete entries of the focused pane.

        Args:
            entries: Entries to delete; defaults to the selection.
            recursive: Confirm removal of non-empty directories.

        Returns:
            One result per entry; failures do not stop the others.

        Raises:
            ConfirmationRequired: If non-empty directories are included
                and ``recursive`` is False.
        """
        with self._guard():
            pane = self.focused
            targets = self._targets(pane, entries)
            if not recursive:
                non_empty = [e for e in targets if e.is_dir and pane.fs.list_dir(e.path)]
                if non_empty:
                    raise ConfirmationRequired(non_empty)

            results: list[OperationResult] = []
            for entry in targets:
                try:
                    pane.fs.remove(entry.path, recursive=recursive)
                    results.append(OperationResult(path=entry.path, success=True))
                except IoError as e:
                    logger.warning("Cannot delete %s: %s", entry.path, e)
                    results.append(OperationResult(path=entry.path, success=False, error=str(e)))
            self._reload_quietly(pane)
            return results

    def rename(self, entry: FileEntry, new_name: str) -> str:
        """Rename or move an entry of the focused pane.

        A bare name renames in place; a path is resolved against the
        working directory.

        Returns:
            The entry's new path.
        """
        if not new_name or new_name in (".", ".."):
            msg = f"Invalid name: {new_name!r}"
            raise ValueError(msg)
        with self._guard():
            pane = self.focused
            if "/" in new_name or "\\" in new_name:
                destination = pane.fs.absolute(new_name)
            else:
                destination = pane.fs.join(pane.fs.dirname(entry.path), new_name)
            pane.fs.rename(entry.path, destination)
            self._reload_quietly(pane)
            return destination

    def copy(self, entry: FileEntry, destination: str) -> str:
        """Copy an entry within the focused pane's filesystem.

        Returns:
            The copy's path.
        """
        with self._guard():
            pane = self.focused
            target = pane.fs.absolute(destination)
            pane.fs.copy(entry.path, target)
            self._reload_quietly(pane)
            return target

    def mkdir(self, name: str) -> str:
        """Create a directory in the focused pane.

        Returns:
            The new directory's path.
        """
        with self._guard():
            pane = self.focused
            path = pane.fs.absolute(name)
            pane.fs.mkdir(path)
            self._reload_quietly(pane)
            return path

    def exec(self, command: str) -> str:
        """Run a shell command in the focused pane's working directory.

        Returns:
            The command's output.
        """
        with self._guard():
            pane = self.focused
            output = pane.fs.exec(command)
            self._reload_quietly(pane)
            return output
