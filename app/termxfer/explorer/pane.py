"""Per-side explorer state."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from termxfer.explorer.formatter import Formatter
from termxfer.explorer.sorting import GroupDirs, SortKey, sort_entries
from termxfer.filetransfer.base import FileSystem
from termxfer.models.entry import FileEntry

logger = logging.getLogger(__name__)


class DirectoryStack:
    """History of visited directories with a forward stack.

    The last element of the history is the current directory. Moving
    back pops the history onto the forward stack; visiting a new
    directory clears the forward stack.
    """

    def __init__(self, initial: str) -> None:
        self._history: list[str] = [initial]
        self._forward: list[str] = []

    @property
    def current(self) -> str:
        """Return the current directory."""
        return self._history[-1]

    @property
    def history(self) -> tuple[str, ...]:
        """Return visited directories, oldest first."""
        return tuple(self._history)

    @property
    def previous(self) -> str | None:
        """Return the directory pop() would return to."""
        return self._history[-2] if len(self._history) > 1 else None

    @property
    def next(self) -> str | None:
        """Return the directory forward() would revisit."""
        return self._forward[-1] if self._forward else None

    def __len__(self) -> int:
        return len(self._history)

    def push(self, path: str) -> None:
        """Visit ``path``, clearing the forward stack."""
        self._forward.clear()
        if path != self.current:
            self._history.append(path)

    def pop(self) -> str | None:
        """Return to the previous directory.

        Returns:
            The new current directory, or None at the bottom of the stack.
        """
        if len(self._history) == 1:
            return None
        self._forward.append(self._history.pop())
        return self.current

    def forward(self) -> str | None:
        """Revisit the most recently popped directory.

        Returns:
            The new current directory, or None if there is none.
        """
        if not self._forward:
            return None
        self._history.append(self._forward.pop())
        return self.current

    def replace(self, path: str) -> None:
        """Swap the current directory without growing the history."""
        self._history[-1] = path
        self._forward.clear()

    def reset(self, path: str) -> None:
        """Start over with ``path`` as the sole entry."""
        self._history = [path]
        self._forward.clear()


@dataclass
class PaneState:
    """One side of the explorer.

    Attributes:
        fs: Filesystem the pane browses.
        stack: Navigation history.
        formatter: Row renderer for this pane.
        sort_key: Active listing order.
        group_dirs: Directory placement policy.
        show_hidden: Whether dot-files are listed.
        entries: Raw entries of the current directory.
        listing: Visible entries, filtered and sorted.
        selection: Paths of selected entries.
    """

    fs: FileSystem
    stack: DirectoryStack
    formatter: Formatter = field(default_factory=Formatter)
    sort_key: SortKey = SortKey.NAME
    group_dirs: GroupDirs = GroupDirs.FIRST
    show_hidden: bool = False
    entries: list[FileEntry] = field(default_factory=list)
    listing: list[FileEntry] = field(default_factory=list)
    selection: set[str] = field(default_factory=set)

    @property
    def cwd(self) -> str:
        """Return the pane's current directory."""
        return self.stack.current

    def load(self) -> None:
        """Re-read the current directory and rebuild the visible listing.

        Raises:
            IoError: If the directory cannot be listed.
        """
        self.entries = self.fs.list_dir(self.cwd)
        self.refresh()

    def refresh(self) -> None:
        """Rebuild the visible listing from the raw entries.

        Selected entries that are no longer visible are deselected.
        """
        visible = [e for e in self.entries if self.show_hidden or not e.is_hidden]
        self.listing = sort_entries(visible, self.sort_key, self.group_dirs)
        visible_paths = {e.path for e in self.listing}
        self.selection &= visible_paths

    def clear(self) -> None:
        """Forget entries and selection."""
        self.entries = []
        self.listing = []
        self.selection.clear()

    def find(self, name: str) -> FileEntry | None:
        """Return the visible entry called ``name``, if any."""
        return next((e for e in self.listing if e.name == name), None)

    def selected_entries(self) -> list[FileEntry]:
        """Return selected entries in listing order."""
        return [e for e in self.listing if e.path in self.selection]

    def render(self) -> list[str]:
        """Render the visible listing with the pane's formatter."""
        return [self.formatter.format(e) for e in self.listing]
