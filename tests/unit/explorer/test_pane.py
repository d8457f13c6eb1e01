"""Unit tests for explorer pane state and directory history."""

from termxfer.explorer.pane import DirectoryStack, PaneState
from termxfer.explorer.sorting import GroupDirs, SortKey


class TestDirectoryStack:
    """Tests for DirectoryStack navigation history."""

    def test_initial(self) -> None:
        """A new stack holds only its initial directory."""
        stack = DirectoryStack("/home/user")
        assert stack.current == "/home/user"
        assert stack.previous is None
        assert stack.next is None
        assert len(stack) == 1

    def test_push_and_pop(self) -> None:
        """Popping returns to the previous directory."""
        stack = DirectoryStack("/")
        stack.push("/srv")
        stack.push("/srv/data")

        assert stack.pop() == "/srv"
        assert stack.pop() == "/"
        assert stack.pop() is None
        assert stack.current == "/"

    def test_push_same_directory(self) -> None:
        """Pushing the current directory does not grow the history."""
        stack = DirectoryStack("/srv")
        stack.push("/srv")
        assert stack.history == ("/srv",)

    def test_forward(self) -> None:
        """Popped directories can be revisited in reverse order."""
        stack = DirectoryStack("/")
        stack.push("/a")
        stack.push("/a/b")
        stack.pop()
        stack.pop()

        assert stack.next == "/a"
        assert stack.forward() == "/a"
        assert stack.forward() == "/a/b"
        assert stack.forward() is None

    def test_push_clears_forward(self) -> None:
        """Visiting a new directory discards the forward stack."""
        stack = DirectoryStack("/")
        stack.push("/a")
        stack.pop()
        stack.push("/b")

        assert stack.next is None
        assert stack.history == ("/", "/b")

    def test_replace_and_reset(self) -> None:
        """replace() swaps the top; reset() starts over."""
        stack = DirectoryStack("/a")
        stack.push("/a/b")
        stack.replace("/a/c")
        assert stack.history == ("/a", "/a/c")

        stack.reset("/x")
        assert stack.history == ("/x",)


class TestPaneState:
    """Tests for PaneState listing and selection."""

    def _pane(self, memory_remote, **kwargs) -> PaneState:
        return PaneState(fs=memory_remote, stack=DirectoryStack("/home/user"), **kwargs)

    def test_load_hides_dotfiles(self, memory_remote) -> None:
        """Hidden entries are filtered and directories come first."""
        pane = self._pane(memory_remote)
        pane.load()

        assert [e.name for e in pane.listing] == ["data", "empty", "readme.txt"]
        assert len(pane.entries) == 4

    def test_show_hidden(self, memory_remote) -> None:
        """show_hidden lists dot-files too."""
        pane = self._pane(memory_remote, show_hidden=True)
        pane.load()
        assert pane.find(".profile") is not None

    def test_sort_by_size(self, memory_remote) -> None:
        """Sort settings apply on refresh."""
        memory_remote.add_file("/home/user/big.bin", b"x" * 500)
        pane = self._pane(memory_remote, sort_key=SortKey.SIZE, group_dirs=GroupDirs.NONE)
        pane.load()

        files = [e.name for e in pane.listing if e.is_file]
        assert files == ["big.bin", "readme.txt"]

    def test_refresh_drops_hidden_selection(self, memory_remote) -> None:
        """Entries that disappear from view are deselected."""
        pane = self._pane(memory_remote, show_hidden=True)
        pane.load()
        pane.selection = {"/home/user/.profile", "/home/user/readme.txt"}

        pane.show_hidden = False
        pane.refresh()

        assert pane.selection == {"/home/user/readme.txt"}
        assert [e.name for e in pane.selected_entries()] == ["readme.txt"]

    def test_clear(self, memory_remote) -> None:
        """clear() forgets entries and selection."""
        pane = self._pane(memory_remote)
        pane.load()
        pane.selection.add("/home/user/readme.txt")
        pane.clear()

        assert pane.listing == []
        assert pane.selection == set()

    def test_render(self, memory_remote) -> None:
        """Each visible entry renders to one row."""
        pane = self._pane(memory_remote)
        pane.load()
        rows = pane.render()

        assert len(rows) == 3
        assert rows[2].startswith("readme.txt")
