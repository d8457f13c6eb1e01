"""Dual-pane explorer: navigation, selection, sorting and row formatting."""

from termxfer.explorer.formatter import Formatter, FormatterError
from termxfer.explorer.pane import DirectoryStack, PaneState
from termxfer.explorer.sorting import GroupDirs, SortKey, sort_entries
from termxfer.explorer.state import ConfirmationRequired, Explorer, OperationResult

__all__ = [
    "ConfirmationRequired",
    "DirectoryStack",
    "Explorer",
    "Formatter",
    "FormatterError",
    "GroupDirs",
    "OperationResult",
    "PaneState",
    "SortKey",
    "sort_entries",
]
