"""Watch command implementation.

Keeps the tree in sync with a directory and reports every refresh.
"""

import asyncio
from pathlib import Path
from typing import Annotated

import typer

from blinkctl.cli.types import load_cli_config
from blinkctl.core.coordinator import DirectoryCoordinator, ScanOutcome
from blinkctl.filesystem.watcher import WatchTargetNotFoundError
from blinkctl.utils.formatting import console, print_error, print_info, print_stats


def _report(coordinator: DirectoryCoordinator, outcome: ScanOutcome) -> None:
    if not outcome.success:
        print_error(outcome.error or "Refresh failed")
        return
    summary = outcome.summary
    if not summary.changed:
        return
    console.print(
        f"[info]{outcome.path}[/] "
        f"[success]+{summary.added}[/] [warning]~{summary.updated}[/] [error]-{summary.removed}[/]"
    )
    print_stats(coordinator.store.total_stats, label="Now")


async def _watch(coordinator: DirectoryCoordinator, path: Path, recursive: bool | None) -> int:
    outcome = await coordinator.scan_directory_structure(path)
    if not outcome.success:
        print_error(outcome.error or "Scan failed")
        return 1

    print_stats(coordinator.store.total_stats, label="Initial scan")
    coordinator.add_refresh_listener(lambda o: _report(coordinator, o))
    try:
        await coordinator.watch_directory(path, recursive)
    except WatchTargetNotFoundError as e:
        print_error(str(e))
        return 1

    print_info(f"Watching {coordinator.root_path} (Ctrl+C to stop)")
    try:
        await asyncio.Event().wait()
    finally:
        coordinator.close()
    return 0


def watch(
    path: Annotated[
        Path,
        typer.Argument(help="Directory to watch."),
    ],
    recursive: Annotated[
        bool | None,
        typer.Option(
            "--recursive/--no-recursive",
            help="Watch subdirectories (default from config).",
        ),
    ] = None,
) -> None:
    """Scan a directory and keep it in sync until interrupted."""
    config = load_cli_config()
    coordinator = DirectoryCoordinator(config=config)
    try:
        code = asyncio.run(_watch(coordinator, path, recursive))
    except KeyboardInterrupt:
        print_info("Stopped watching.")
        code = 0
    if code:
        raise typer.Exit(code=code)
