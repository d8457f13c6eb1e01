"""Explorer colours.

The bundled ``data/theme.toml`` supplies every colour; a user file at
``~/.config/termxfer/theme.toml`` may override any subset of them. The
result is turned into the rich styles used by panes, listings and the
transfer progress display.
"""

import logging
import tomllib
from importlib import resources
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator
from rich.theme import Theme

from termxfer.core.paths import get_theme_path

logger = logging.getLogger(__name__)

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

# (style name, colour field, style attributes)
_STYLES: tuple[tuple[str, str, str], ...] = (
    ("text", "text", ""),
    ("muted", "muted", ""),
    ("header", "header", ""),
    ("bold_header", "header", "bold"),
    ("border", "border", ""),
    ("success", "success", ""),
    ("warning", "warning", ""),
    ("error", "error", "bold"),
    ("info", "info", ""),
    ("entry.directory", "directory", "bold"),
    ("entry.symlink", "symlink", "italic"),
    ("entry.file", "file", ""),
    ("entry.selected", "selected", "reverse"),
    ("pane.local", "local_pane", "bold"),
    ("pane.remote", "remote_pane", "bold"),
    ("progress", "progress", ""),
)


class ThemeColors(BaseModel):
    """Hex colours for each explorer role.

    Values are #RRGGBB; the short #RGB form is accepted and expanded.
    """

    model_config = ConfigDict(extra="forbid")

    text: str = "#ffffff"
    muted: str = "#b2bec3"
    header: str = "#69B9A1"
    border: str = "#29526d"

    success: str = "#03b971"
    warning: str = "#f5b332"
    error: str = "#f53263"
    info: str = "#0ec1c8"

    directory: str = "#0e8ac8"
    symlink: str = "#d44ebc"
    file: str = "#ffffff"
    selected: str = "#faf870"

    local_pane: str = "#69B9A1"
    remote_pane: str = "#f5b332"
    progress: str = "#c1ff62"

    @field_validator("*", mode="before")
    @classmethod
    def validate_hex_color(cls, v: object, info: Any) -> str:
        if not isinstance(v, str):
            msg = f"{info.field_name}: color must be a string"
            raise ValueError(msg)
        color = v.strip()
        if not color.startswith("#"):
            msg = f"{info.field_name}: color must start with '#'"
            raise ValueError(msg)
        digits = color[1:]
        if len(digits) not in (3, 6):
            msg = f"{info.field_name}: color must be #RGB or #RRGGBB format"
            raise ValueError(msg)
        if not _HEX_DIGITS.issuperset(digits):
            msg = f"{info.field_name}: invalid hex color '{color}'"
            raise ValueError(msg)
        if len(digits) == 3:
            return "#" + "".join(c * 2 for c in digits)
        return color


def get_bundled_theme_path() -> Path:
    """Return the path of the theme shipped with the package."""
    return resources.files("termxfer.data").joinpath("theme.toml")  # type: ignore[return-value]


def _load_toml_colors(path: Path) -> dict[str, str] | None:
    """Read the ``[colors]`` table of a theme file.

    Non-string values are dropped. A missing, unreadable or malformed file
    yields None.
    """
    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        return None
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring theme file %s: %s", path, e)
        return None

    table = data.get("colors", {})
    if not isinstance(table, dict):
        logger.warning("Ignoring theme file %s: 'colors' is not a table", path)
        return None
    return {name: value for name, value in table.items() if isinstance(value, str)}


def load_theme(user_path: Path | None = None) -> ThemeColors:
    """Merge the bundled colours with the user's overrides.

    Args:
        user_path: Override file to use instead of the default location.

    Returns:
        The merged colours, or the built-in defaults if the merge does not
        validate.
    """
    merged: dict[str, str] = {}
    for source in (Path(get_bundled_theme_path()), user_path or get_theme_path()):
        colors = _load_toml_colors(source)
        if colors:
            logger.debug("Theme colours from %s: %s", source, sorted(colors))
            merged.update(colors)

    try:
        return ThemeColors(**merged)
    except ValidationError as e:
        logger.warning("Invalid theme colours, using defaults: %s", e)
        return ThemeColors()


def get_rich_theme(colors: ThemeColors | None = None) -> Theme:
    """Build the rich theme for ``colors`` (loaded from disk if None)."""
    if colors is None:
        colors = load_theme()
    styles: dict[str, str] = {}
    for name, field, attrs in _STYLES:
        color = getattr(colors, field)
        styles[name] = f"{attrs} {color}" if attrs else color
    return Theme(styles)


_cached_theme: Theme | None = None


def get_theme() -> Theme:
    """Return the process-wide rich theme, loading it on first use."""
    global _cached_theme
    if _cached_theme is None:
        _cached_theme = get_rich_theme()
    return _cached_theme
