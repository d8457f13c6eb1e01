"""Line-oriented explorer shell.

A thin command loop over the Explorer: each line is split with shlex
and dispatched to a handler. Errors are printed and the loop goes on;
only ``quit`` (or end of input) leaves it.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable

import typer
from rich.markup import escape

from termxfer.cli.display import print_operation_results, print_transfer_summary
from termxfer.cli.progress import ConflictPolicy, run_transfers
from termxfer.core.bookmarks import BookmarkError, BookmarkStore
from termxfer.explorer.sorting import GroupDirs, SortKey
from termxfer.explorer.state import ConfirmationRequired, Explorer
from termxfer.filetransfer.errors import ConnectionLost, TermxferError
from termxfer.models.entry import FileEntry
from termxfer.models.session import ConnectionParams
from termxfer.models.transfer import EndpointKind
from termxfer.utils.formatting import (
    console,
    create_pane_table,
    print_error,
    print_info,
    print_success,
    print_warning,
)

logger = logging.getLogger(__name__)

HELP_TEXT = """\
[bold_header]Navigation[/]
  ls                       show the focused pane
  panes                    show both panes
  tab                      switch focus between local and remote
  cd NAME|PATH|..          enter a directory
  up / fwd                 go back / forward through the history
  reload                   re-read the focused directory
[bold_header]View[/]
  hidden                   toggle hidden files
  sort KEY \\[first|last|none]  sort by name, size, mtime or type
  find PATTERN             list entries matching a wildcard pattern
[bold_header]Selection[/]
  sel PATTERN              toggle selection of matching entries
  selall / unsel           select everything / clear the selection
[bold_header]Files[/]
  xfer [NAME...]           transfer selection (or NAME...) to the other pane
  rm [-r] [NAME...]        delete selection (or NAME...)
  mv NAME NEW              rename or move
  cp NAME DEST             copy within the focused pane
  mkdir NAME               create a directory
  exec COMMAND...          run a shell command in the focused directory
[bold_header]Session[/]
  save NAME [--password]   bookmark the current host
  quit                     disconnect and exit"""


class ExplorerShell:
    """Reads commands and drives an Explorer until the user quits.

    Args:
        explorer: Explorer with the remote pane already open.
        params: Parameters of the open session, used by ``save``.
        store: Bookmark store for ``save``.
        policy: Conflict policy for transfers.
    """

    def __init__(
        self,
        explorer: Explorer,
        params: ConnectionParams,
        store: BookmarkStore,
        policy: ConflictPolicy = ConflictPolicy.ASK,
    ) -> None:
        self.explorer = explorer
        self.params = params
        self.store = store
        self.policy = policy
        self._running = False
        self._handlers: dict[str, Callable[[list[str]], None]] = {
            "help": self._help,
            "ls": self._ls,
            "panes": self._panes,
            "tab": self._tab,
            "cd": self._cd,
            "up": self._up,
            "fwd": self._forward,
            "reload": self._reload,
            "hidden": self._hidden,
            "sort": self._sort,
            "find": self._find,
            "sel": self._select,
            "selall": self._select_all,
            "unsel": self._unselect,
            "xfer": self._transfer,
            "rm": self._remove,
            "mv": self._rename,
            "cp": self._copy,
            "mkdir": self._mkdir,
            "exec": self._exec,
            "save": self._save,
            "quit": self._quit,
            "exit": self._quit,
        }

    # -- loop -----------------------------------------------------------------

    def _prompt(self) -> str:
        side = self.explorer.focus
        style = "pane.remote" if side == EndpointKind.REMOTE else "pane.local"
        return f"[{style}]{side.value}[/] [muted]{self.explorer.focused.cwd}[/] > "

    def run(self) -> None:
        """Read and execute commands until ``quit`` or end of input."""
        self._running = True
        self._ls([])
        while self._running:
            try:
                line = console.input(self._prompt())
            except EOFError:
                break
            except KeyboardInterrupt:
                console.print()
                continue
            self.execute(line)

    def execute(self, line: str) -> None:
        """Execute one command line, printing any error."""
        try:
            args = shlex.split(line)
        except ValueError as e:
            print_error(f"Cannot parse command: {e}")
            return
        if not args:
            return
        name, *rest = args
        if name.lower() == "exec":
            rest = line.strip().split(None, 1)[1:]
        handler = self._handlers.get(name.lower())
        if handler is None:
            print_error(f"Unknown command '{escape(name)}' (type 'help')")
            return
        try:
            handler(rest)
        except ConnectionLost as e:
            print_error(f"{escape(str(e))} (remote pane closed; reconnect with 'termxfer connect')")
        except (TermxferError, ValueError) as e:
            print_error(escape(str(e)))

    # -- helpers --------------------------------------------------------------

    def _entry(self, name: str) -> FileEntry:
        pane = self.explorer.focused
        entry = pane.find(name)
        if entry is None:
            msg = f"No entry named '{name}' in {pane.cwd}"
            raise ValueError(msg)
        return entry

    def _entries(self, names: list[str]) -> list[FileEntry] | None:
        if not names:
            return None
        return [self._entry(name) for name in names]

    @staticmethod
    def _require(args: list[str], count: int, usage: str) -> None:
        if len(args) < count:
            msg = f"Usage: {usage}"
            raise ValueError(msg)

    # -- handlers -------------------------------------------------------------

    def _help(self, args: list[str]) -> None:
        console.print(HELP_TEXT)

    def _ls(self, args: list[str]) -> None:
        pane = self.explorer.focused
        style = "pane.remote" if self.explorer.focus == EndpointKind.REMOTE else "pane.local"
        console.print(create_pane_table(pane, pane.cwd, style))

    def _panes(self, args: list[str]) -> None:
        local = self.explorer.local_pane
        console.print(create_pane_table(local, local.cwd, "pane.local"))
        if self.explorer.remote_pane is not None:
            remote = self.explorer.remote_pane
            console.print(create_pane_table(remote, remote.cwd, "pane.remote"))

    def _tab(self, args: list[str]) -> None:
        side = self.explorer.switch_focus()
        print_info(f"Focus: {side.value}")

    def _cd(self, args: list[str]) -> None:
        self._require(args, 1, "cd NAME|PATH|..")
        target = args[0]
        if target == "..":
            pane = self.explorer.focused
            self.explorer.navigate_to(pane.fs.dirname(pane.cwd))
            return
        entry = self.explorer.focused.find(target)
        if entry is not None:
            self.explorer.navigate_into(entry)
        else:
            self.explorer.navigate_to(target)

    def _up(self, args: list[str]) -> None:
        self.explorer.navigate_up()

    def _forward(self, args: list[str]) -> None:
        if self.explorer.navigate_forward() is None:
            print_info("Nothing to go forward to")

    def _reload(self, args: list[str]) -> None:
        self.explorer.reload()

    def _hidden(self, args: list[str]) -> None:
        shown = self.explorer.toggle_hidden()
        print_info("Hidden files shown" if shown else "Hidden files hidden")

    def _sort(self, args: list[str]) -> None:
        self._require(args, 1, "sort name|size|mtime|type [first|last|none]")
        key = SortKey(args[0].lower())
        group_dirs = GroupDirs(args[1].lower()) if len(args) > 1 else None
        self.explorer.change_sort_key(key, group_dirs)

    def _find(self, args: list[str]) -> None:
        self._require(args, 1, "find PATTERN")
        matches = self.explorer.search(args[0])
        if not matches:
            print_info("No matches")
            return
        for entry in matches:
            console.print(entry.name, markup=False, highlight=False)

    def _select(self, args: list[str]) -> None:
        self._require(args, 1, "sel PATTERN")
        selection = self.explorer.toggle_selection(self.explorer.search(args[0]))
        print_info(f"{len(selection)} selected")

    def _select_all(self, args: list[str]) -> None:
        self.explorer.select_all()
        print_info(f"{len(self.explorer.focused.selection)} selected")

    def _unselect(self, args: list[str]) -> None:
        self.explorer.clear_selection()

    def _transfer(self, args: list[str]) -> None:
        jobs = self.explorer.enqueue_transfer(self._entries(args))
        if not jobs:
            print_warning("Nothing selected")
            return
        print_transfer_summary(run_transfers(self.explorer, self.policy))

    def _remove(self, args: list[str]) -> None:
        recursive = "-r" in args
        names = [a for a in args if a != "-r"]
        entries = self._entries(names)
        try:
            results = self.explorer.delete(entries, recursive=recursive)
        except ConfirmationRequired as e:
            names_list = ", ".join(entry.name for entry in e.entries)
            if not typer.confirm(f"Delete non-empty directories {names_list}?", default=False):
                print_info("Aborted.")
                return
            results = self.explorer.delete(entries, recursive=True)
        if not results:
            print_warning("Nothing selected")
            return
        print_operation_results(results, "delete")

    def _rename(self, args: list[str]) -> None:
        self._require(args, 2, "mv NAME NEW")
        destination = self.explorer.rename(self._entry(args[0]), args[1])
        print_success(f"Renamed to {destination}")

    def _copy(self, args: list[str]) -> None:
        self._require(args, 2, "cp NAME DEST")
        destination = self.explorer.copy(self._entry(args[0]), args[1])
        print_success(f"Copied to {destination}")

    def _mkdir(self, args: list[str]) -> None:
        self._require(args, 1, "mkdir NAME")
        print_success(f"Created {self.explorer.mkdir(args[0])}")

    def _exec(self, args: list[str]) -> None:
        self._require(args, 1, "exec COMMAND...")
        output = self.explorer.exec(args[0])
        console.print(output.rstrip("\n"), markup=False, highlight=False)

    def _save(self, args: list[str]) -> None:
        self._require(args, 1, "save NAME [--password]")
        with_password = "--password" in args[1:]
        params = self.params
        session = self.explorer.remote.session
        if session is not None:
            params = ConnectionParams(
                protocol=params.protocol,
                address=params.address,
                port=params.port,
                username=params.username,
                password=params.password,
                directory=session.wrkdir,
            )
        try:
            self.store.add_bookmark(args[0], params, save_password=with_password)
            self.store.save()
        except BookmarkError as e:
            print_error(str(e))
            return
        print_success(f"Bookmark '{args[0]}' saved")

    def _quit(self, args: list[str]) -> None:
        self._running = False
