"""User configuration.

Configuration is stored in ~/.config/termxfer/config.toml. A missing
file yields defaults; a malformed one is a startup error.
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated, Any

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from termxfer.core.paths import get_config_path
from termxfer.explorer.formatter import DEFAULT_TEMPLATE, FormatterError, validate_template
from termxfer.explorer.sorting import GroupDirs, SortKey
from termxfer.models.session import Protocol

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the configuration file cannot be read or is invalid."""


class UserConfig(BaseModel):
    """User preferences.

    Attributes:
        default_protocol: Protocol used when an address omits one.
        show_hidden_files: Show dot-files in both panes at startup.
        group_dirs: Directory placement in listings.
        sort_key: Initial listing order.
        local_file_fmt: Row template for the local pane.
        remote_file_fmt: Row template for the remote pane.
        connect_timeout: Seconds allowed for connect and login.
    """

    model_config = ConfigDict(extra="forbid")

    default_protocol: Protocol = Protocol.SFTP
    show_hidden_files: bool = False
    group_dirs: GroupDirs = GroupDirs.FIRST
    sort_key: SortKey = SortKey.NAME
    local_file_fmt: str = DEFAULT_TEMPLATE
    remote_file_fmt: str = DEFAULT_TEMPLATE
    connect_timeout: Annotated[
        float,
        Field(gt=0, le=600, description="Connect and login timeout in seconds"),
    ] = 30.0

    @field_validator("local_file_fmt", "remote_file_fmt")
    @classmethod
    def validate_file_fmt(cls, v: str) -> str:
        """Reject row templates the formatter cannot render."""
        try:
            return validate_template(v)
        except FormatterError as e:
            raise ValueError(str(e)) from e


def load_config(path: Path | None = None) -> UserConfig:
    """Load user configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default path.

    Returns:
        Validated UserConfig; defaults when the file does not exist.

    Raises:
        ConfigError: If the TOML syntax or the content is invalid.
    """
    config_path = path or get_config_path()
    if not config_path.exists():
        logger.debug("No config at %s, using defaults", config_path)
        return UserConfig()

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return UserConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config content in {config_path}: {e}") from e


def write_toml_atomic(path: Path, data: dict[str, Any], mode: int | None = None) -> Path:
    """Write a TOML document atomically.

    The document is written to a temporary file in the same directory and
    moved into place with os.replace().

    Args:
        path: Destination file.
        data: Document to serialize.
        mode: Permission bits to apply before the file becomes visible.

    Returns:
        Path where the document was saved.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path: Path | None = None
    try:
        with NamedTemporaryFile(mode="wb", dir=path.parent, delete=False, suffix=".tmp") as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(str(tmp_path), str(path))
    except OSError:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise
    return path


def save_config(config: UserConfig, path: Path | None = None) -> Path:
    """Save user configuration to a TOML file.

    Args:
        config: Configuration to save.
        path: Destination. If None, uses the default path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    config_path = path or get_config_path()
    try:
        return write_toml_atomic(config_path, config.model_dump(mode="json"))
    except OSError as e:
        raise ConfigError(f"Failed to write config: {e}") from e
