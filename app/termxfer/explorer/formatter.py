"""Template-driven rendering of explorer rows.

A template mixes literal text with ``{KEY}``, ``{KEY:WIDTH}`` and
``{KEY:WIDTH:EXTRA}`` tokens. Templates are validated once when the
formatter is built, so a bad template is reported at startup rather
than while drawing a listing.

Example:
    >>> formatter = Formatter("{NAME:12} {SIZE}")
    >>> formatter.format(entry)
    'report.pdf   2.0 KB'
"""

import re
from dataclasses import dataclass
from enum import Enum

from termxfer.models.entry import FileEntry

DEFAULT_TEMPLATE = "{NAME:24} {PEX} {USER} {SIZE} {MTIME:17:%b %d %Y %H:%M}"
DEFAULT_TIME_FORMAT = "%b %d %Y %H:%M"
ELLIPSIS = "…"

_TOKEN_RE = re.compile(r"\{(?P<key>[A-Za-z]+)(?::(?P<width>[^:}]*)(?::(?P<extra>[^}]*))?)?\}")


class FormatterError(Exception):
    """Raised when a row template is invalid."""


class FormatKey(str, Enum):
    """Entry attribute a template token renders."""

    NAME = "NAME"
    PEX = "PEX"
    USER = "USER"
    GROUP = "GROUP"
    SIZE = "SIZE"
    ATIME = "ATIME"
    CTIME = "CTIME"
    MTIME = "MTIME"
    SYMLINK = "SYMLINK"


_TIME_KEYS = frozenset({FormatKey.ATIME, FormatKey.CTIME, FormatKey.MTIME})


@dataclass(frozen=True, slots=True)
class _Field:
    key: FormatKey
    width: int | None
    extra: str | None


def elide(text: str, width: int) -> str:
    """Fit ``text`` into ``width`` columns.

    Text that fits is left-justified; longer text keeps ``width - 4``
    characters followed by an ellipsis and is then padded to ``width``.
    """
    if len(text) <= width:
        return text.ljust(width)
    if width <= 4:
        return text[:width]
    return (text[: width - 4] + ELLIPSIS).ljust(width)


def _parse_width(raw: str | None, token: str) -> int | None:
    if raw is None or raw == "":
        return None
    if not raw.isdigit() or int(raw) == 0:
        msg = f"Invalid width {raw!r} in {token}"
        raise FormatterError(msg)
    return int(raw)


class Formatter:
    """Renders FileEntry rows from a template.

    Attributes:
        template: Source template string.
    """

    def __init__(self, template: str = DEFAULT_TEMPLATE) -> None:
        """Parse and validate the template.

        Raises:
            FormatterError: On unknown keys or invalid widths.
        """
        self.template = template
        self._parts: list[str | _Field] = []
        position = 0
        for match in _TOKEN_RE.finditer(template):
            if match.start() > position:
                self._parts.append(template[position : match.start()])
            token = match.group(0)
            try:
                key = FormatKey(match["key"].upper())
            except ValueError:
                msg = f"Unknown key {match['key']!r} in {token}"
                raise FormatterError(msg) from None
            extra = match["extra"]
            if extra and key not in _TIME_KEYS:
                msg = f"Key {key.value} takes no extra argument in {token}"
                raise FormatterError(msg)
            self._parts.append(_Field(key, _parse_width(match["width"], token), extra or None))
            position = match.end()
        if position < len(template):
            self._parts.append(template[position:])

    def _render(self, field: _Field, entry: FileEntry) -> str:
        if field.key == FormatKey.NAME:
            return entry.name
        if field.key == FormatKey.PEX:
            return entry.permissions
        if field.key == FormatKey.USER:
            return entry.user or ""
        if field.key == FormatKey.GROUP:
            return entry.group or ""
        if field.key == FormatKey.SIZE:
            return entry.size_human
        if field.key == FormatKey.SYMLINK:
            return f"-> {entry.symlink_target}" if entry.is_symlink else ""
        stamp = {
            FormatKey.ATIME: entry.atime,
            FormatKey.CTIME: entry.ctime,
            FormatKey.MTIME: entry.mtime,
        }[field.key]
        if stamp is None:
            return ""
        return stamp.strftime(field.extra or DEFAULT_TIME_FORMAT)

    def format(self, entry: FileEntry) -> str:
        """Render one entry."""
        out: list[str] = []
        for part in self._parts:
            if isinstance(part, str):
                out.append(part)
                continue
            text = self._render(part, entry)
            out.append(elide(text, part.width) if part.width is not None else text)
        return "".join(out)


def validate_template(template: str) -> str:
    """Check a template and return it unchanged.

    Raises:
        FormatterError: If the template is invalid.
    """
    Formatter(template)
    return template
