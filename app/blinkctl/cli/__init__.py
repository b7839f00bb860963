"""CLI package for blinkctl.

This package contains the Typer application and all subcommands.
"""

from blinkctl.cli.main import app

__all__ = ["app"]
