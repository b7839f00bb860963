"""Shared types and helpers for CLI commands.

This module provides the common option enums and the config/detector
construction used across command modules.
"""

from enum import Enum

import typer

from blinkctl.core.config import BlinkctlConfig, ConfigError, load_config_or_default
from blinkctl.detection.command import CommandEyeDetector
from blinkctl.detection.engine import EyeDetector
from blinkctl.utils.formatting import print_error


class OutputFormat(str, Enum):
    """Output format options."""

    TREE = "tree"
    TABLE = "table"
    JSON = "json"


def load_cli_config() -> BlinkctlConfig:
    """Load the user config, exiting with an error message if it is invalid."""
    try:
        return load_config_or_default()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def build_detector(config: BlinkctlConfig) -> EyeDetector | None:
    """Create the configured eye detector, None if no command is configured."""
    command = config.detection.command
    if not command:
        return None
    return CommandEyeDetector(command, timeout_seconds=float(config.detection.timeout_seconds))
