"""Application configuration.

This module provides the configuration models and I/O functions for
scanning, watching and eye detection.

Configuration is stored in ~/.config/blinkctl/config.toml
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Annotated

import tomli_w
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from blinkctl.core.errors import BlinkctlError
from blinkctl.core.paths import ensure_config_dir, get_config_path

logger = logging.getLogger(__name__)


class ScanSettings(BaseModel):
    """Options applied to every directory scan."""

    model_config = ConfigDict(extra="forbid")

    include_images: Annotated[
        bool,
        Field(description="Collect image files while scanning"),
    ] = True
    include_subdirectories: Annotated[
        bool,
        Field(description="Descend below the scanned directory"),
    ] = True


class WatchSettings(BaseModel):
    """Options for live filesystem watching."""

    model_config = ConfigDict(extra="forbid")

    recursive: Annotated[
        bool,
        Field(description="Watch subdirectories as well"),
    ] = True


class DetectionSettings(BaseModel):
    """Options for the external eye-detection engine.

    Attributes:
        command: Detector command; the image file path is appended as the
            last argument. None disables detection.
        timeout_seconds: Maximum time per image.
        max_concurrent: Maximum images dispatched at once.
    """

    model_config = ConfigDict(extra="forbid")

    command: Annotated[
        list[str] | None,
        Field(description="Detector command (image path appended)"),
    ] = None
    timeout_seconds: Annotated[
        int,
        Field(ge=1, le=3600, description="Timeout per image in seconds (1-3600)"),
    ] = 60
    max_concurrent: Annotated[
        int,
        Field(ge=1, le=64, description="Parallel detections (1-64)"),
    ] = 4


class BlinkctlConfig(BaseModel):
    """Top-level blinkctl configuration."""

    model_config = ConfigDict(extra="forbid")

    scan: ScanSettings = Field(default_factory=ScanSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)
    detection: DetectionSettings = Field(default_factory=DetectionSettings)


class ConfigError(BlinkctlError):
    """Base exception for configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Raised when the config file is not found."""


class ConfigParseError(ConfigError):
    """Raised when the config file cannot be parsed."""


def load_config(path: Path | None = None) -> BlinkctlConfig:
    """Load configuration from a TOML file.

    Args:
        path: Path to the config file. If None, uses the default config path.

    Returns:
        Validated BlinkctlConfig object.

    Raises:
        ConfigNotFoundError: If the config file doesn't exist.
        ConfigParseError: If the TOML syntax is invalid.
        ConfigError: If the content doesn't match the schema.
    """
    config_path = path or get_config_path()

    if not config_path.exists():
        raise ConfigNotFoundError(f"Config not found: {config_path}")

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Invalid TOML syntax: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read config: {e}") from e

    try:
        return BlinkctlConfig.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise ConfigError(f"Invalid config content: {e}") from e


def load_config_or_default(path: Path | None = None) -> BlinkctlConfig:
    """Load configuration, falling back to defaults when no file exists.

    Raises:
        ConfigParseError: If the file exists but is not valid TOML.
        ConfigError: If the file exists but does not match the schema.
    """
    try:
        return load_config(path)
    except ConfigNotFoundError:
        logger.debug("No config file found, using defaults")
        return BlinkctlConfig()


def save_config(config: BlinkctlConfig, path: Path | None = None) -> Path:
    """Save configuration to a TOML file.

    The file is written atomically by first writing to a temporary file
    and then using os.replace() for atomic rename.

    Args:
        config: The configuration to save.
        path: Path to save the config. If None, uses the default config path.

    Returns:
        Path where the config was saved.

    Raises:
        ConfigError: If the file cannot be written.
    """
    if path is None:
        ensure_config_dir()
        config_path = get_config_path()
    else:
        config_path = path
        config_path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(exclude_none=True)

    tmp_path: Path | None = None
    try:
        # Write atomically using a temporary file in the same directory
        with NamedTemporaryFile(
            mode="wb",
            dir=config_path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(config_path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(f"Failed to write config: {e}") from e

    return config_path
