"""Unit tests for remote listing parsers."""

from datetime import datetime

import pytest
from termxfer.filetransfer.errors import IoError, IoErrorKind
from termxfer.filetransfer.listing import (
    entry_from_facts,
    parse_dos_line,
    parse_list_output,
    parse_ls_line,
    parse_ls_output,
    parse_lstime,
    parse_pex,
)
from termxfer.models.entry import EntryKind

NOW = datetime(2024, 6, 1, 12, 0)


class TestParsePex:
    """Tests for parse_pex."""

    @pytest.mark.parametrize(
        ("pex", "mode"),
        [
            ("rwxr-xr-x", 0o755),
            ("rw-r--r--", 0o644),
            ("---------", 0o000),
            ("rwsr-xr-x", 0o4755),
            ("rwxr-sr-x", 0o2755),
            ("rwxrwxrwt", 0o1777),
            ("rwSr--r--", 0o4644),
            ("rwxrwxrwT", 0o1776),
        ],
    )
    def test_modes(self, pex: str, mode: int) -> None:
        """Permission strings map to mode bits including special flags."""
        assert parse_pex(pex) == mode


class TestParseLstime:
    """Tests for parse_lstime."""

    def test_with_year(self) -> None:
        """Dates with a year carry no time of day."""
        assert parse_lstime("Nov  5  2019", NOW) == datetime(2019, 11, 5)

    def test_iso(self) -> None:
        """ISO dates are accepted."""
        assert parse_lstime("2019-11-05 13:46", NOW) == datetime(2019, 11, 5, 13, 46)

    def test_recent_uses_current_year(self) -> None:
        """A year-less past date belongs to the current year."""
        assert parse_lstime("Jan 15 09:30", NOW) == datetime(2024, 1, 15, 9, 30)

    def test_future_date_moves_to_last_year(self) -> None:
        """A year-less date after today belongs to the previous year."""
        assert parse_lstime("Dec 24 18:00", NOW) == datetime(2023, 12, 24, 18, 0)

    def test_tomorrow_tolerated(self) -> None:
        """Tomorrow is kept in the current year to allow clock skew."""
        assert parse_lstime("Jun  2 08:00", NOW) == datetime(2024, 6, 2, 8, 0)

    @pytest.mark.parametrize("value", ["Foo 1 2020", "yesterday", "Jan"])
    def test_invalid(self, value: str) -> None:
        """Unrecognized dates raise ValueError."""
        with pytest.raises(ValueError):
            parse_lstime(value, NOW)


class TestParseLsOutput:
    """Tests for parse_ls_line and parse_ls_output."""

    def test_sample_listing(self, sample_ls_output: str) -> None:
        """Dot entries, totals and special files are dropped."""
        entries = parse_ls_output(sample_ls_output.splitlines(), "/srv", NOW)
        names = [entry.name for entry in entries]
        assert names == ["my report.pdf", " leading space.txt", "photos", "latest", "setuid tool"]

    def test_spaces_in_names(self, sample_ls_output: str) -> None:
        """Embedded and leading spaces are preserved."""
        entries = {e.name: e for e in parse_ls_output(sample_ls_output.splitlines(), "/srv", NOW)}
        report = entries["my report.pdf"]
        assert report.path == "/srv/my report.pdf"
        assert report.size == 1024
        assert report.mode == 0o644
        assert report.user == "user"
        assert report.group == "staff"
        assert report.mtime == datetime(2024, 1, 15, 9, 30)
        assert entries[" leading space.txt"].size == 0

    def test_directory(self, sample_ls_output: str) -> None:
        """Directories carry no size."""
        entries = {e.name: e for e in parse_ls_output(sample_ls_output.splitlines(), "/srv", NOW)}
        photos = entries["photos"]
        assert photos.kind == EntryKind.DIRECTORY
        assert photos.size is None

    def test_symlink(self, sample_ls_output: str) -> None:
        """Symlink lines are split into name and target."""
        entries = {e.name: e for e in parse_ls_output(sample_ls_output.splitlines(), "/srv", NOW)}
        latest = entries["latest"]
        assert latest.kind == EntryKind.SYMLINK
        assert latest.symlink_target == "photos/2024"

    def test_setuid_iso_date(self, sample_ls_output: str) -> None:
        """ISO dates and setuid bits are parsed."""
        entries = {e.name: e for e in parse_ls_output(sample_ls_output.splitlines(), "/srv", NOW)}
        tool = entries["setuid tool"]
        assert tool.mode == 0o4755
        assert tool.mtime == datetime(2023, 6, 1, 12, 0)

    def test_blank_line(self) -> None:
        """Blank lines are ignored."""
        assert parse_ls_line("   ", "/srv") is None

    def test_garbage_raises(self) -> None:
        """An unrecognized line is a bad response."""
        with pytest.raises(IoError) as exc_info:
            parse_ls_line("this is not a listing", "/srv")
        assert exc_info.value.kind == IoErrorKind.BAD_RESPONSE


class TestParseListOutput:
    """Tests for FTP LIST parsing in UNIX and DOS formats."""

    def test_dos_lines(self) -> None:
        """DOS style lines are recognized."""
        lines = [
            "06-01-24  03:15PM       <DIR>          backups",
            "06-01-24  09:05AM             4096 web.config",
        ]
        entries = parse_list_output(lines, "/")
        assert [e.name for e in entries] == ["backups", "web.config"]
        assert entries[0].is_dir
        assert entries[1].size == 4096
        assert entries[1].mtime == datetime(2024, 6, 1, 9, 5)

    def test_dos_line_rejects_unix(self) -> None:
        """parse_dos_line returns None for UNIX lines."""
        assert parse_dos_line("-rw-r--r-- 1 u g 1 Jan 15 09:30 a", "/") is None

    def test_mixed_falls_back_to_unix(self) -> None:
        """UNIX lines are parsed when the DOS format does not match."""
        entries = parse_list_output(["-rw-r--r-- 1 u g 12 Jan 15 09:30 a.txt"], "/pub", NOW)
        assert entries[0].path == "/pub/a.txt"
        assert entries[0].size == 12


class TestEntryFromFacts:
    """Tests for MLSD fact parsing."""

    def test_file(self) -> None:
        """A file row yields size, mode, owner and times."""
        facts = {
            "Type": "file",
            "Size": "2048",
            "Modify": "20240115093000",
            "UNIX.mode": "0644",
            "UNIX.owner": "user",
        }
        entry = entry_from_facts("notes.txt", facts, "/home/user")
        assert entry is not None
        assert entry.kind == EntryKind.FILE
        assert entry.size == 2048
        assert entry.mode == 0o644
        assert entry.user == "user"
        assert entry.mtime == datetime(2024, 1, 15, 9, 30)

    def test_directory(self) -> None:
        """A dir row has no size."""
        entry = entry_from_facts("pub", {"type": "dir", "sizd": "4096"}, "/")
        assert entry is not None
        assert entry.is_dir
        assert entry.size is None
        assert entry.path == "/pub"

    @pytest.mark.parametrize("kind", ["cdir", "pdir"])
    def test_dot_rows_skipped(self, kind: str) -> None:
        """Current and parent directory rows are dropped."""
        assert entry_from_facts(".", {"type": kind}, "/") is None

    def test_unknown_type_skipped(self) -> None:
        """Unknown types are dropped."""
        assert entry_from_facts("dev", {"type": "OS.unix=chr-1/3"}, "/") is None

    def test_symlink(self) -> None:
        """Symlink types carry the target after the colon."""
        entry = entry_from_facts("current", {"type": "OS.unix=slink:releases/v2"}, "/srv")
        assert entry is not None
        assert entry.is_symlink
        assert entry.symlink_target == "releases/v2"
