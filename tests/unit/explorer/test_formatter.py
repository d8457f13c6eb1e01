"""Unit tests for template-driven row formatting."""

from datetime import datetime

import pytest
from termxfer.explorer.formatter import (
    DEFAULT_TEMPLATE,
    ELLIPSIS,
    Formatter,
    FormatterError,
    elide,
    validate_template,
)
from termxfer.models.entry import EntryKind, FileEntry


@pytest.fixture
def entry() -> FileEntry:
    """Regular file with every attribute set."""
    return FileEntry(
        name="quarterly report.pdf",
        path="/docs/quarterly report.pdf",
        kind=EntryKind.FILE,
        size=2048,
        mode=0o640,
        user="alice",
        group="staff",
        atime=datetime(2024, 2, 1, 8, 0),
        mtime=datetime(2024, 1, 15, 9, 30),
    )


class TestElide:
    """Tests for elide."""

    def test_pads_short_text(self) -> None:
        """Short text is left-justified to the width."""
        assert elide("abc", 6) == "abc   "

    def test_exact_fit(self) -> None:
        """Text of exactly the width is unchanged."""
        assert elide("abcdef", 6) == "abcdef"

    def test_long_text(self) -> None:
        """Long text keeps width minus four characters and an ellipsis."""
        result = elide("abcdefghijkl", 8)
        assert result == "abcd" + ELLIPSIS + "   "
        assert len(result) == 8

    def test_tiny_width(self) -> None:
        """Very small widths truncate without an ellipsis."""
        assert elide("abcdef", 3) == "abc"


class TestFormatter:
    """Tests for Formatter rendering."""

    def test_fields(self, entry: FileEntry) -> None:
        """Each key renders its attribute."""
        formatter = Formatter("{NAME}|{PEX}|{USER}|{GROUP}|{SIZE}")
        assert formatter.format(entry) == "quarterly report.pdf|-rw-r-----|alice|staff|2.0 KB"

    def test_width_and_elision(self, entry: FileEntry) -> None:
        """Widths pad or elide the rendered value."""
        formatter = Formatter("[{NAME:10}] [{USER:8}]")
        assert formatter.format(entry) == f"[quarte{ELLIPSIS}   ] [alice   ]"

    def test_time_format(self, entry: FileEntry) -> None:
        """Time keys accept a strftime pattern."""
        formatter = Formatter("{MTIME::%Y-%m-%d} {ATIME:5:%H:%M}")
        assert formatter.format(entry) == "2024-01-15 08:00"

    def test_missing_values_render_empty(self) -> None:
        """Unknown attributes render as empty strings."""
        bare = FileEntry(name="x", path="/x", kind=EntryKind.FILE)
        assert Formatter("<{USER}><{MTIME}>").format(bare) == "<><>"

    def test_symlink(self) -> None:
        """SYMLINK renders the target for links only."""
        link = FileEntry(
            name="latest", path="/latest", kind=EntryKind.SYMLINK, symlink_target="v2"
        )
        assert Formatter("{NAME} {SYMLINK}").format(link) == "latest -> v2"

    def test_lowercase_keys(self, entry: FileEntry) -> None:
        """Keys are case-insensitive."""
        assert Formatter("{name}").format(entry) == "quarterly report.pdf"

    def test_default_template(self, entry: FileEntry) -> None:
        """The default template renders a full row."""
        row = Formatter(DEFAULT_TEMPLATE).format(entry)
        assert row.startswith("quarterly report.pdf     -rw-r----- alice 2.0 KB")
        assert row.endswith("Jan 15 2024 09:30")


class TestTemplateValidation:
    """Tests for template errors."""

    @pytest.mark.parametrize(
        ("template", "message"),
        [
            ("{COLOR}", "Unknown key"),
            ("{NAME:abc}", "Invalid width"),
            ("{NAME:0}", "Invalid width"),
            ("{NAME:10:%Y}", "takes no extra argument"),
        ],
    )
    def test_invalid(self, template: str, message: str) -> None:
        """Bad templates raise FormatterError at construction."""
        with pytest.raises(FormatterError, match=message):
            Formatter(template)

    def test_validate_returns_template(self) -> None:
        """validate_template passes valid templates through."""
        assert validate_template("{NAME} {SIZE:8}") == "{NAME} {SIZE:8}"

    def test_literal_text_only(self) -> None:
        """A template without tokens renders as is."""
        entry = FileEntry(name="x", path="/x", kind=EntryKind.FILE)
        assert Formatter("plain").format(entry) == "plain"
