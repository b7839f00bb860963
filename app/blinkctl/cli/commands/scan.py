"""Scan command implementation.

Scans a directory into the tree and displays it.
"""

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import typer

from blinkctl.cli.types import OutputFormat, load_cli_config
from blinkctl.core.coordinator import DirectoryCoordinator, ScanOutcome
from blinkctl.utils.formatting import (
    build_tree,
    console,
    create_image_table,
    print_error,
    print_info,
    print_stats,
)


def scan(
    ctx: typer.Context,
    path: Annotated[
        Path,
        typer.Argument(help="Directory to scan."),
    ],
    no_images: Annotated[
        bool,
        typer.Option("--no-images", help="Collect directories only."),
    ] = False,
    shallow: Annotated[
        bool,
        typer.Option("--shallow", help="Scan only the immediate children."),
    ] = False,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format: tree, table or json.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TREE,
    export_path: Annotated[
        Path | None,
        typer.Option(
            "--export",
            "-e",
            help="Export the scanned tree to a JSON file.",
        ),
    ] = None,
) -> None:
    """Scan a directory and display its images.

    Examples:
        blinkctl scan ~/Pictures                  # Show as tree
        blinkctl scan ~/Pictures --format table   # Show image table
        blinkctl scan ~/Pictures --shallow        # Top level only
        blinkctl scan ~/Pictures -e tree.json     # Export to JSON
    """
    config = load_cli_config()
    if no_images:
        config.scan.include_images = False
    if shallow:
        config.scan.include_subdirectories = False

    coordinator = DirectoryCoordinator(config=config)
    outcome = asyncio.run(coordinator.scan_directory_structure(path))

    if not outcome.success:
        print_error(outcome.error or "Scan failed")
        raise typer.Exit(code=1)

    data = _tree_to_dict(coordinator, outcome)
    quiet = bool(ctx.obj and ctx.obj.get("quiet"))

    if output_format == OutputFormat.JSON:
        typer.echo(json.dumps(data, indent=2))
        if export_path is not None:
            _export_results(data, export_path, announce=False)
        return

    if export_path is not None:
        _export_results(data, export_path, announce=not quiet)

    store = coordinator.store
    if output_format == OutputFormat.TABLE:
        console.print(create_image_table(store.images.all_images, title=str(coordinator.root_path)))
    else:
        console.print(build_tree(store.root, label=str(coordinator.root_path)))

    if not quiet:
        print_stats(store.total_stats)


def _tree_to_dict(coordinator: DirectoryCoordinator, outcome: ScanOutcome) -> dict[str, Any]:
    """Build the JSON representation of the scanned tree."""
    store = coordinator.store
    images = store.images.all_images
    directories = sorted(
        node.path for node in store.iter_nodes() if node.is_directory and node.path != "/"
    )
    return {
        "root": str(coordinator.root_path),
        "directories": directories,
        "images": [image.to_dict() for image in sorted(images, key=lambda i: i.path)],
        "stats": store.total_stats.to_dict(),
        "changes": outcome.summary.to_dict(),
    }


def _export_results(data: dict[str, Any], export_path: Path, announce: bool = True) -> None:
    """Write scan data to a JSON file.

    Raises:
        typer.Exit: If the file cannot be written.
    """
    try:
        export_path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        print_error(f"Failed to export results: {e}")
        raise typer.Exit(code=1) from e
    if announce:
        print_info(f"Exported scan to {export_path}")
