"""Rich console formatting utilities.

Provides consistent formatting for CLI output using Rich.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from blinkctl.core.theme import get_theme

if TYPE_CHECKING:
    from blinkctl.models.image import ImageInfo
    from blinkctl.models.node import DirectoryNode, DirectoryStats, EyeDetectionResult


def _detect_color_system() -> str | None:
    """Return "truecolor" for interactive terminals, None to let Rich auto-detect."""
    if sys.stdout.isatty():
        return "truecolor"
    return None


# Shared console instances (theme loaded once at import)
console = Console(theme=get_theme(), color_system=_detect_color_system())
err_console = Console(theme=get_theme(), stderr=True, color_system=_detect_color_system())


def display_text(text: str) -> str:
    """Make a file name or path safe to print.

    Names that are not valid UTF-8 carry surrogate escapes after decoding; those
    bytes are shown as replacement characters. Square brackets are escaped so
    names are never read as Rich markup.
    """
    safe = text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
    return escape(safe)


def format_size(size_bytes: int) -> str:
    """Format a byte count as a human-readable string."""
    size = float(size_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"


def format_detection(detection: EyeDetectionResult | None) -> str:
    """Format an eye-detection result with color markup."""
    if detection is None:
        return "[undetected]undetected[/]"
    if detection.is_open:
        return f"[eyes_open]open[/] [muted]({detection.confidence:.0%})[/]"
    return f"[eyes_closed]closed[/] [muted]({detection.confidence:.0%})[/]"


def build_tree(root: DirectoryNode, label: str | None = None) -> Tree:
    """Build a Rich tree mirroring a directory node and its descendants.

    Args:
        root: Node to render.
        label: Label for the top node. Defaults to the node name.

    Returns:
        Rich Tree ready for printing.
    """
    tree = Tree(f"[directory]{display_text(label or root.name)}[/]", guide_style="border")
    stack: list[tuple[DirectoryNode, Tree]] = [(root, tree)]
    while stack:
        node, branch = stack.pop()
        for child in node.children:
            if child.is_directory:
                stack.append((child, branch.add(f"[directory]{display_text(child.name)}/[/]")))
                continue
            name = display_text(child.name)
            size = format_size(child.metadata.size) if child.metadata else "-"
            eyes = format_detection(child.eye_detection)
            branch.add(f"[image]{name}[/] [muted]{size}[/] {eyes}")
    return tree


def create_image_table(images: list[ImageInfo], title: str = "Images") -> Table:
    """Create a Rich table listing images.

    Args:
        images: Registry records to display.
        title: Table title.

    Returns:
        Rich Table configured for image display.
    """
    table = Table(
        title=display_text(title),
        show_header=True,
        header_style="bold_header",
        border_style="border",
        row_styles=["", "on grey7"],
    )
    table.add_column("Path", no_wrap=True)
    table.add_column("Type", style="muted")
    table.add_column("Size", style="info", justify="right")
    table.add_column("Dimensions", style="muted", justify="right")
    table.add_column("Eyes")

    for image in sorted(images, key=lambda i: i.path):
        dims = f"{image.dimensions.width}x{image.dimensions.height}" if image.dimensions else "-"
        table.add_row(
            f"[image]{display_text(image.path)}[/]",
            image.mime_type,
            format_size(image.size),
            dims,
            format_detection(image.eye_detection),
        )
    return table


def print_stats(stats: DirectoryStats, label: str = "Summary") -> None:
    """Print aggregate directory statistics on one line."""
    console.print(
        f"\n[bold_header]{label}:[/] {stats.total_images} images "
        f"([info]{format_size(stats.total_size)}[/]), "
        f"[eyes_open]{stats.open_eye_images} open[/], "
        f"[eyes_closed]{stats.closed_eye_images} closed[/], "
        f"[undetected]{stats.undetected_images} undetected[/], "
        f"avg confidence {stats.average_confidence:.0%}"
    )


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[info]{message}[/]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    err_console.print(f"[warning]Warning:[/] {message}")


def print_error(message: str) -> None:
    """Print an error message."""
    err_console.print(f"[error]Error:[/] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[success]{message}[/]")
