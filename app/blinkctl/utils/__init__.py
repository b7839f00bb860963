"""Utility modules for blinkctl.

This module exports commonly used utility functions.
"""

from blinkctl.utils.formatting import (
    build_tree,
    console,
    create_image_table,
    err_console,
    format_detection,
    format_size,
    print_error,
    print_info,
    print_stats,
    print_success,
    print_warning,
)

__all__ = [
    "build_tree",
    "console",
    "create_image_table",
    "err_console",
    "format_detection",
    "format_size",
    "print_error",
    "print_info",
    "print_stats",
    "print_success",
    "print_warning",
]
