"""Parsers for remote directory listings.

SCP has no listing primitive and many FTP servers only answer LIST, so
both fall back to parsing ``ls -l`` style output. FTP servers that
advertise MLSD get machine-readable facts instead, and IIS-style servers
answer LIST in DOS format.
"""

import logging
import posixpath
import re
from collections.abc import Iterable
from datetime import datetime, timedelta

from termxfer.filetransfer.errors import IoError, IoErrorKind
from termxfer.models.entry import EntryKind, FileEntry

logger = logging.getLogger(__name__)

# Exactly one space separates the date from the name so that leading and
# embedded spaces in names survive.
_LS_RE = re.compile(
    r"^(?P<type>[\-ld])(?P<pex>[\-rwxsStTl]{9})[.+@]?\s+"
    r"(?P<links>\d+)\s+(?P<user>\S+)\s+(?P<group>\S+)\s+(?P<size>\d+)\s+"
    r"(?P<date>[A-Za-z]{3}\s+\d{1,2}\s+(?:\d{1,2}:\d{2}|\d{4})"
    r"|\d{4}-\d{2}-\d{2}\s+\d{2}:\d{2})"
    r" (?P<name>.+)$"
)

_DOS_RE = re.compile(
    r"^(?P<date>\d{2}-\d{2}-\d{2,4})\s+(?P<time>\d{1,2}:\d{2}\s*[AaPp][Mm])\s+"
    r"(?P<size><DIR>|\d+)\s+(?P<name>.+)$"
)

_SPECIAL_TYPES = frozenset("bcps")

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}


def parse_pex(pex: str) -> int:
    """Convert a nine character permission string to mode bits.

    Args:
        pex: Permission string such as ``rwxr-sr-T``.

    Returns:
        Mode bits including setuid, setgid and sticky flags.
    """
    mode = 0
    for index, special in enumerate((0o4000, 0o2000, 0o1000)):
        read, write, execute = pex[index * 3 : index * 3 + 3]
        shift = (2 - index) * 3
        if read == "r":
            mode |= 0o4 << shift
        if write == "w":
            mode |= 0o2 << shift
        if execute in ("x", "s", "t"):
            mode |= 0o1 << shift
        if execute in ("s", "S", "t", "T"):
            mode |= special
    return mode


def parse_lstime(value: str, now: datetime | None = None) -> datetime:
    """Parse the modification time column of ``ls -l`` output.

    Recent files show ``Mon DD HH:MM`` without a year; the year is the
    current one unless that would put the date in the future.

    Args:
        value: Date column, e.g. ``Nov 5 13:46``, ``Nov 5 2019`` or
            ``2019-11-05 13:46``.
        now: Reference time for year inference.

    Returns:
        Parsed naive datetime.

    Raises:
        ValueError: If the value is not a recognized date.
    """
    parts = value.split()
    if len(parts) == 2 and "-" in parts[0]:
        return datetime.strptime(" ".join(parts), "%Y-%m-%d %H:%M")
    if len(parts) != 3:
        msg = f"Unrecognized date: {value!r}"
        raise ValueError(msg)
    month = _MONTHS.get(parts[0].lower())
    if month is None:
        msg = f"Unrecognized month: {parts[0]!r}"
        raise ValueError(msg)
    day = int(parts[1])
    if ":" not in parts[2]:
        return datetime(int(parts[2]), month, day)
    hour, minute = (int(p) for p in parts[2].split(":"))
    reference = now or datetime.now()
    year = reference.year
    # A year-less date never lies in the future
    if (month, day) > (reference.month, reference.day) and not _is_tomorrow(
        reference, month, day
    ):
        year -= 1
    return datetime(year, month, day, hour, minute)


def _is_tomorrow(reference: datetime, month: int, day: int) -> bool:
    # Tolerate clock skew between client and server
    tomorrow = reference + timedelta(days=1)
    return (tomorrow.month, tomorrow.day) == (month, day)


def parse_ls_line(line: str, parent: str, now: datetime | None = None) -> FileEntry | None:
    """Parse one line of ``ls -l`` output.

    Args:
        line: Single listing line.
        parent: Directory the listing belongs to.
        now: Reference time for year inference.

    Returns:
        The parsed entry, or None for lines that carry no listable entry
        (``total``, ``.``, ``..`` and special files).

    Raises:
        IoError: With kind BAD_RESPONSE if the line is not recognized.
    """
    line = line.rstrip("\r\n")
    if not line.strip() or line.startswith("total "):
        return None
    if line[0] in _SPECIAL_TYPES:
        logger.debug("Skipping special file in listing: %s", line)
        return None

    match = _LS_RE.match(line)
    if match is None:
        raise IoError(IoErrorKind.BAD_RESPONSE, parent, f"unrecognized listing line: {line!r}")

    name = match["name"]
    type_char = match["type"]
    target: str | None = None
    if type_char == "l" and " -> " in name:
        name, target = name.split(" -> ", 1)
    if name in (".", ".."):
        return None

    try:
        mtime: datetime | None = parse_lstime(match["date"], now)
    except ValueError:
        logger.debug("Unparseable date %r in listing of %s", match["date"], parent)
        mtime = None

    if type_char == "d":
        kind, size = EntryKind.DIRECTORY, None
    elif type_char == "l":
        kind, size = EntryKind.SYMLINK, int(match["size"])
        target = target or ""
    else:
        kind, size = EntryKind.FILE, int(match["size"])

    return FileEntry(
        name=name,
        path=posixpath.join(parent, name),
        kind=kind,
        size=size,
        mode=parse_pex(match["pex"]),
        user=match["user"],
        group=match["group"],
        mtime=mtime,
        symlink_target=target,
    )


def parse_dos_line(line: str, parent: str) -> FileEntry | None:
    """Parse one line of DOS style LIST output.

    Returns:
        The parsed entry, or None if the line is not in DOS format.
    """
    match = _DOS_RE.match(line.rstrip("\r\n"))
    if match is None:
        return None
    name = match["name"]
    if name in (".", ".."):
        return None
    mtime: datetime | None = None
    stamp = f"{match['date']} {match['time'].replace(' ', '').upper()}"
    for fmt in ("%m-%d-%y %I:%M%p", "%m-%d-%Y %I:%M%p"):
        try:
            mtime = datetime.strptime(stamp, fmt)
            break
        except ValueError:
            continue
    is_dir = match["size"] == "<DIR>"
    return FileEntry(
        name=name,
        path=posixpath.join(parent, name),
        kind=EntryKind.DIRECTORY if is_dir else EntryKind.FILE,
        size=None if is_dir else int(match["size"]),
        mtime=mtime,
    )


def parse_ls_output(
    lines: Iterable[str],
    parent: str,
    now: datetime | None = None,
) -> list[FileEntry]:
    """Parse ``ls -la`` output into entries.

    Raises:
        IoError: With kind BAD_RESPONSE on the first unrecognized line.
    """
    entries: list[FileEntry] = []
    for line in lines:
        entry = parse_ls_line(line, parent, now)
        if entry is not None:
            entries.append(entry)
    return entries


def parse_list_output(
    lines: Iterable[str],
    parent: str,
    now: datetime | None = None,
) -> list[FileEntry]:
    """Parse FTP LIST output, accepting both UNIX and DOS formats.

    Raises:
        IoError: With kind BAD_RESPONSE on the first unrecognized line.
    """
    entries: list[FileEntry] = []
    for line in lines:
        entry = parse_dos_line(line, parent)
        if entry is None:
            entry = parse_ls_line(line, parent, now)
        if entry is not None:
            entries.append(entry)
    return entries


def parse_mlsx_time(value: str) -> datetime | None:
    """Parse an MLSx ``modify`` fact (``YYYYMMDDHHMMSS[.sss]``)."""
    try:
        return datetime.strptime(value[:14], "%Y%m%d%H%M%S")
    except ValueError:
        return None


def entry_from_facts(name: str, facts: dict[str, str], parent: str) -> FileEntry | None:
    """Build an entry from MLSD/MLST facts.

    Args:
        name: Entry name as reported by the server.
        facts: Lowercased fact names mapped to values.
        parent: Directory the entry belongs to.

    Returns:
        The entry, or None for ``cdir``/``pdir`` rows and unknown types.
    """
    facts = {key.lower(): value for key, value in facts.items()}
    kind_fact = facts.get("type", "").lower()
    if kind_fact in ("cdir", "pdir") or name in (".", ".."):
        return None

    name = posixpath.basename(name.rstrip("/")) or name
    target: str | None = None
    if kind_fact == "dir":
        kind = EntryKind.DIRECTORY
    elif kind_fact == "file":
        kind = EntryKind.FILE
    elif kind_fact.startswith("os.unix=slink") or kind_fact.startswith("os.unix=symlink"):
        kind = EntryKind.SYMLINK
        target = facts.get("type", "").partition(":")[2]
    else:
        logger.debug("Skipping MLSD entry %r with type %r", name, kind_fact)
        return None

    size: int | None = None
    if kind != EntryKind.DIRECTORY:
        raw_size = facts.get("size") or facts.get("sizd")
        size = int(raw_size) if raw_size and raw_size.isdigit() else None

    mode: int | None = None
    raw_mode = facts.get("unix.mode")
    if raw_mode:
        try:
            mode = int(raw_mode, 8) & 0o7777
        except ValueError:
            mode = None

    return FileEntry(
        name=name,
        path=posixpath.join(parent, name),
        kind=kind,
        size=size,
        mode=mode,
        user=facts.get("unix.owner") or facts.get("unix.uid"),
        group=facts.get("unix.group") or facts.get("unix.gid"),
        mtime=parse_mlsx_time(facts["modify"]) if "modify" in facts else None,
        ctime=parse_mlsx_time(facts["create"]) if "create" in facts else None,
        symlink_target=target,
    )
