"""Detect command implementation.

Scans a directory and runs eye detection on every image.
"""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from blinkctl.cli.types import build_detector, load_cli_config
from blinkctl.core.coordinator import DetectionBatch, DirectoryCoordinator, ImageFilter, ScanOutcome
from blinkctl.utils.formatting import (
    console,
    create_image_table,
    display_text,
    print_error,
    print_stats,
    print_warning,
)


async def _scan_and_detect(
    coordinator: DirectoryCoordinator,
    path: Path,
) -> tuple[ScanOutcome, DetectionBatch]:
    outcome = await coordinator.scan_directory_structure(path)
    if not outcome.success:
        return outcome, DetectionBatch()

    images = coordinator.store.images
    images.select_images(image.id for image in images.all_images)
    batch = await coordinator.detect_eyes_for_selected_images()
    return outcome, batch


def detect(
    path: Annotated[
        Path,
        typer.Argument(help="Directory whose images are classified."),
    ],
    image_filter: Annotated[
        ImageFilter | None,
        typer.Option(
            "--filter",
            help="Only list open-eyes, closed-eyes or undetected images.",
            case_sensitive=False,
        ),
    ] = None,
) -> None:
    """Classify every image below a directory as eyes open or closed.

    Requires detection.command to be set in config.toml.

    Examples:
        blinkctl detect ~/Pictures
        blinkctl detect ~/Pictures --filter closed-eyes
    """
    config = load_cli_config()
    detector = build_detector(config)
    if detector is None:
        print_error("No detector command configured. Set detection.command in config.toml.")
        raise typer.Exit(code=1)

    coordinator = DirectoryCoordinator(config=config, detector=detector)
    outcome, batch = asyncio.run(_scan_and_detect(coordinator, path))

    if not outcome.success:
        print_error(outcome.error or "Scan failed")
        raise typer.Exit(code=1)

    for failed_path, error in sorted(batch.failed.items()):
        print_warning(f"{display_text(failed_path)}: {error}")

    if image_filter is not None:
        images = coordinator.filter_selected_images(image_filter)
        title = f"Images ({image_filter.value})"
    else:
        images = coordinator.selected_images()
        title = "Images"

    console.print(create_image_table(images, title=title))
    print_stats(coordinator.store.total_stats)

    if batch.failed and not batch.detected:
        raise typer.Exit(code=1)
