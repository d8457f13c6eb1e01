"""Unit tests for explorer colours and the rich theme built from them."""

# pyright: reportPrivateUsage=false

from pathlib import Path
from unittest.mock import patch

import pytest
import termxfer.core.theme as theme_module
from rich.theme import Theme
from termxfer.core.theme import (
    ThemeColors,
    _load_toml_colors,
    get_rich_theme,
    get_theme,
    load_theme,
)


class TestThemeColors:
    """Tests for ThemeColors Pydantic model."""

    def test_default_values(self) -> None:
        """ThemeColors has sensible defaults."""
        colors = ThemeColors()
        assert colors.text == "#ffffff"
        assert colors.directory == "#0e8ac8"
        assert colors.remote_pane == "#f5b332"

    def test_valid_hex_colors(self) -> None:
        """ThemeColors accepts valid hex color codes."""
        colors = ThemeColors(text="#AABBCC", muted="#abc")
        assert colors.text == "#AABBCC"
        assert colors.muted == "#aabbcc"

    def test_invalid_hex_no_hash(self) -> None:
        """ThemeColors rejects colors without # prefix."""
        with pytest.raises(ValueError, match="must start with '#'"):
            ThemeColors(text="ffffff")

    def test_invalid_hex_wrong_length(self) -> None:
        """ThemeColors rejects colors with wrong length."""
        with pytest.raises(ValueError, match="must be #RGB or #RRGGBB"):
            ThemeColors(selected="#ff")

    def test_invalid_hex_chars(self) -> None:
        """ThemeColors rejects invalid hex characters."""
        with pytest.raises(ValueError, match="invalid hex color"):
            ThemeColors(symlink="#gggggg")

    def test_extra_fields_forbidden(self) -> None:
        """ThemeColors rejects unknown fields."""
        with pytest.raises(ValueError):
            ThemeColors(package_manual="#ffffff")  # type: ignore[call-arg]


class TestLoadTomlColors:
    """Tests for _load_toml_colors internal function."""

    def test_loads_valid_toml(self, tmp_path: Path) -> None:
        """Loads colors from valid TOML file."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('[colors]\ntext = "#000000"\ndirectory = "#aabbcc"\n')

        result = _load_toml_colors(theme_file)

        assert result == {"text": "#000000", "directory": "#aabbcc"}

    def test_returns_none_for_missing_file(self, tmp_path: Path) -> None:
        """Returns None when file doesn't exist."""
        assert _load_toml_colors(tmp_path / "nonexistent.toml") is None

    def test_returns_none_for_invalid_toml(self, tmp_path: Path) -> None:
        """Returns None for malformed TOML."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text("not valid [ toml syntax")
        assert _load_toml_colors(theme_file) is None

    def test_ignores_non_string_values(self, tmp_path: Path) -> None:
        """Non-string color values are dropped."""
        theme_file = tmp_path / "theme.toml"
        theme_file.write_text('[colors]\ntext = 3\nfile = "#123"\n')
        assert _load_toml_colors(theme_file) == {"file": "#123"}


class TestLoadTheme:
    """Tests for load_theme function."""

    def test_loads_bundled_theme(self, tmp_path: Path) -> None:
        """Loads theme from bundled data file."""
        colors = load_theme(tmp_path / "absent.toml")
        assert colors.header == "#69B9A1"
        assert colors.local_pane == "#69B9A1"

    def test_user_theme_overrides_bundled(self, tmp_path: Path) -> None:
        """User theme overrides bundled theme values."""
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text('[colors]\ndirectory = "#ff0000"\n')

        with patch("termxfer.core.theme.get_theme_path", return_value=user_theme):
            colors = load_theme()

        assert colors.directory == "#ff0000"
        assert colors.success == "#03b971"

    def test_invalid_user_color_falls_back(self, tmp_path: Path) -> None:
        """An invalid override yields the defaults."""
        user_theme = tmp_path / "theme.toml"
        user_theme.write_text('[colors]\nselected = "yellow"\n')

        colors = load_theme(user_theme)

        assert colors.selected == ThemeColors().selected


class TestGetRichTheme:
    """Tests for get_rich_theme function."""

    def test_includes_explorer_styles(self) -> None:
        """Theme includes pane, entry and progress styles."""
        theme = get_rich_theme(ThemeColors())

        for name in (
            "entry.directory",
            "entry.symlink",
            "entry.file",
            "entry.selected",
            "pane.local",
            "pane.remote",
            "progress",
            "bold_header",
        ):
            assert name in theme.styles

    def test_style_attributes(self) -> None:
        """Directories are bold and selections reversed in their own colours."""
        theme = get_rich_theme(ThemeColors(directory="#102030"))

        assert theme.styles["entry.directory"].bold
        assert theme.styles["entry.directory"].color.name == "#102030"
        assert theme.styles["entry.selected"].reverse
        assert theme.styles["bold_header"].color.name == "#69b9a1"

    def test_uses_provided_colors(self) -> None:
        """Uses provided ThemeColors instance."""
        theme = get_rich_theme(ThemeColors(header="#123456"))
        assert theme.styles["header"].color is not None
        assert theme.styles["header"].color.name == "#123456"


class TestGetTheme:
    """Tests for get_theme caching function."""

    def test_caches_theme(self) -> None:
        """get_theme returns cached instance on subsequent calls."""
        theme_module._cached_theme = None

        first = get_theme()
        second = get_theme()

        assert isinstance(first, Theme)
        assert first is second
