"""Integration tests for live directory watching.

These tests run a real watchdog observer against a temporary directory
and verify that filesystem changes reach the tree.
"""

import asyncio
from collections.abc import Callable
from pathlib import Path

from blinkctl.core.coordinator import DirectoryCoordinator, ScanOutcome


async def _wait_for(predicate: Callable[[], bool], timeout: float = 10.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise TimeoutError("Condition not met before timeout")
        await asyncio.sleep(0.05)


class TestLiveWatch:
    """End-to-end watch tests with the local filesystem."""

    def test_created_and_deleted_files(
        self, photo_dir: Path, png_bytes: Callable[..., bytes]
    ) -> None:
        """New files appear and deleted files disappear from the tree."""
        coordinator = DirectoryCoordinator()
        outcomes: list[ScanOutcome] = []
        coordinator.add_refresh_listener(outcomes.append)
        store = coordinator.store

        async def run() -> None:
            await coordinator.scan_directory_structure(photo_dir)
            await coordinator.watch_directory(photo_dir)
            try:
                (photo_dir / "holiday" / "live.png").write_bytes(png_bytes(7, 7))
                await _wait_for(lambda: store.get_node_by_path("/holiday/live.png") is not None)

                (photo_dir / "a.png").unlink()
                await _wait_for(lambda: store.get_node_by_path("/a.png") is None)
            finally:
                coordinator.close()

        asyncio.run(run())

        assert outcomes
        assert all(outcome.success for outcome in outcomes)
        assert store.check_consistency() == []
        assert {image.path for image in store.images.all_images} == {
            "/holiday/beach.JPG",
            "/holiday/sunset.png",
            "/holiday/live.png",
        }
        assert coordinator.watcher.watched_paths == []

    def test_new_subdirectory(self, photo_dir: Path, png_bytes: Callable[..., bytes]) -> None:
        """A created directory and its image are picked up."""
        coordinator = DirectoryCoordinator()
        store = coordinator.store

        async def run() -> None:
            await coordinator.scan_directory_structure(photo_dir)
            await coordinator.watch_directory(photo_dir)
            try:
                new_dir = photo_dir / "party"
                new_dir.mkdir()
                (new_dir / "p.png").write_bytes(png_bytes(1, 1))
                await _wait_for(lambda: store.get_node_by_path("/party/p.png") is not None)
            finally:
                coordinator.close()

        asyncio.run(run())

        party = store.get_node_by_path("/party")
        assert party is not None and party.is_directory
