"""Ordering of directory listings."""

from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

from termxfer.models.entry import FileEntry


class SortKey(str, Enum):
    """Field a listing is ordered by."""

    NAME = "name"
    SIZE = "size"
    MTIME = "mtime"
    TYPE = "type"


class GroupDirs(str, Enum):
    """Where directories go relative to other entries."""

    FIRST = "first"
    LAST = "last"
    NONE = "none"


def _name_key(entry: FileEntry) -> tuple[str, str]:
    return (entry.name.lower(), entry.name)


def _primary_key(key: SortKey) -> Callable[[FileEntry], Any]:
    if key == SortKey.SIZE:
        # Largest first; directories (no size) sort as zero
        return lambda entry: -(entry.size or 0)
    if key == SortKey.MTIME:
        # Newest first; unknown times go last
        return lambda entry: (
            entry.mtime is None,
            -entry.mtime.timestamp() if entry.mtime is not None else 0.0,
        )
    if key == SortKey.TYPE:
        return lambda entry: (entry.extension or "", entry.kind.value)
    return lambda entry: ()


def sort_entries(
    entries: Iterable[FileEntry],
    key: SortKey = SortKey.NAME,
    group_dirs: GroupDirs = GroupDirs.FIRST,
) -> list[FileEntry]:
    """Order entries by a sort key and a directory grouping policy.

    Ties on the sort key break by name, case-insensitively first, so the
    result is deterministic for any input order. Grouping is a stable
    partition applied after sorting.

    Args:
        entries: Entries to order.
        key: Field to order by.
        group_dirs: Directory placement policy.

    Returns:
        New sorted list.
    """
    primary = _primary_key(key)
    ordered = sorted(entries, key=lambda entry: (primary(entry), _name_key(entry)))
    if group_dirs == GroupDirs.NONE:
        return ordered
    dirs = [entry for entry in ordered if entry.is_dir]
    others = [entry for entry in ordered if not entry.is_dir]
    if group_dirs == GroupDirs.FIRST:
        return dirs + others
    return others + dirs
