"""Filesystem scanner for directories and image files.

Walks a directory depth-first and produces a flat ScanResult of
directories and images with paths relative to the scanned root. The
result is not the tree; merging it is done by reconciliation.
"""

import asyncio
import logging
from pathlib import Path

from blinkctl.filesystem.access import FilesystemAccess, LocalFilesystem
from blinkctl.filesystem.probe import HEADER_SIZE, get_mime_type, is_image_file, probe_dimensions
from blinkctl.models.node import Dimensions
from blinkctl.models.scan_result import ScannedDirectory, ScannedImage, ScanRequest, ScanResult

logger = logging.getLogger(__name__)


class FilesystemScanner:
    """Scans a directory for subdirectories and image files.

    Validation failures (missing root, root is not a directory) are
    returned as a failed ScanResult. A failure on a single entry is
    logged and that entry is skipped; it never aborts the scan.

    The blocking walk runs in a worker thread. Cancelling the awaiting
    task discards the result without touching any tree.
    """

    def __init__(self, fs: FilesystemAccess | None = None) -> None:
        self._fs = fs if fs is not None else LocalFilesystem()

    async def scan(
        self,
        root_path: str | Path,
        include_images: bool = True,
        include_subdirectories: bool = True,
    ) -> ScanResult:
        """Scan ``root_path``.

        Args:
            root_path: Directory to scan.
            include_images: Collect image files; directories only if False.
            include_subdirectories: Descend below the immediate children.

        Returns:
            ScanResult with relative paths, or a failed result carrying the
            original request.
        """
        request = ScanRequest(
            root_path=str(root_path),
            include_images=include_images,
            include_subdirectories=include_subdirectories,
        )
        return await asyncio.to_thread(self.scan_sync, request)

    def scan_sync(self, request: ScanRequest) -> ScanResult:
        """Blocking implementation of ``scan``."""
        root = Path(request.root_path)

        try:
            if not self._fs.exists(root):
                return ScanResult.failure(request, f"Directory does not exist: {root}")
            if not self._fs.stat(root).is_directory:
                return ScanResult.failure(request, f"Path is not a directory: {root}")
        except OSError as e:
            return ScanResult.failure(request, f"Cannot access {root}: {e}")

        directories: list[ScannedDirectory] = []
        images: list[ScannedImage] = []
        self._scan_directory(root, "", request, directories, images)

        logger.debug(
            "Scanned %s: %d directories, %d images",
            root,
            len(directories),
            len(images),
        )
        return ScanResult(success=True, request=request, directories=directories, images=images)

    def _scan_directory(
        self,
        directory: Path,
        relative: str,
        request: ScanRequest,
        directories: list[ScannedDirectory],
        images: list[ScannedImage],
    ) -> None:
        """Scan one directory level, recursing depth-first.

        Args:
            directory: Absolute path of the directory being listed.
            relative: Its path relative to the scan root ("" for the root).
            request: Scan options.
            directories: Output list of directories.
            images: Output list of images.
        """
        try:
            names = self._fs.read_dir(directory)
        except OSError as e:
            logger.warning("Cannot read directory %s: %s", directory, e)
            return

        parent_path = relative or None

        for name in names:
            entry = directory / name
            entry_relative = f"{relative}/{name}" if relative else name

            try:
                stat = self._fs.stat(entry)
            except OSError as e:
                logger.warning("Cannot access %s: %s", entry, e)
                continue

            if stat.is_directory:
                directories.append(
                    ScannedDirectory(path=entry_relative, name=name, parent_path=parent_path)
                )
                if not request.include_subdirectories:
                    continue
                if stat.is_symlink:
                    logger.debug("Not descending into symlinked directory %s", entry)
                    continue
                self._scan_directory(entry, entry_relative, request, directories, images)
                continue

            if not (stat.is_file and request.include_images and is_image_file(name)):
                continue

            images.append(
                ScannedImage(
                    path=entry_relative,
                    name=name,
                    parent_path=parent_path,
                    size=stat.size,
                    last_modified=stat.mtime,
                    mime_type=get_mime_type(name),
                    dimensions=self._get_dimensions(entry),
                )
            )

    def _get_dimensions(self, path: Path) -> Dimensions | None:
        """Probe image dimensions, returning None on any read failure."""
        try:
            header = self._fs.read_file_bytes(path, limit=HEADER_SIZE)
        except OSError as e:
            logger.warning("Cannot read image header %s: %s", path, e)
            return None
        return probe_dimensions(header)
