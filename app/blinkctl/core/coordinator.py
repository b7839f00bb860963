"""Integration coordinator.

Composes the tree store, image registry, scanner, change watcher and
the external eye detector into the operations an application uses:
scan, refresh, watch, upload, batch detection and selection filtering.

Reconciliation is serialized per scanned root. While a reconcile is in
flight, further triggers for the same root are coalesced into a pending
set of targets that the running task processes before it finishes, so
two reconciles of one root never interleave.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath

from blinkctl.core.config import BlinkctlConfig
from blinkctl.detection.engine import DetectionError, EyeDetector
from blinkctl.filesystem.access import ChangeEvent, FilesystemAccess, LocalFilesystem
from blinkctl.filesystem.probe import HEADER_SIZE, probe_dimensions
from blinkctl.filesystem.scanner import FilesystemScanner
from blinkctl.filesystem.watcher import ChangeWatcher
from blinkctl.models.image import ImageInfo
from blinkctl.models.node import DirectoryNode, EyeDetectionResult
from blinkctl.tree.reconcile import ReconcileSummary, is_under, reconcile_scan, to_tree_path
from blinkctl.tree.store import ROOT_PATH, DirectoryTreeStore

logger = logging.getLogger(__name__)


class ImageFilter(str, Enum):
    """Predicate applied to the selected images.

    Attributes:
        OPEN_EYES: Detected with open eyes.
        CLOSED_EYES: Detected with closed eyes.
        UNDETECTED: No detection result yet.
    """

    OPEN_EYES = "open-eyes"
    CLOSED_EYES = "closed-eyes"
    UNDETECTED = "undetected"

    def matches(self, image: ImageInfo) -> bool:
        """Check if an image satisfies this filter."""
        if self is ImageFilter.OPEN_EYES:
            return image.is_open
        if self is ImageFilter.CLOSED_EYES:
            return image.is_closed
        return not image.is_detected


@dataclass(frozen=True, slots=True)
class ScanOutcome:
    """Result of a scan or refresh.

    Attributes:
        success: False if the scan failed validation or could not run.
        path: Tree path that was reconciled.
        summary: Mutations applied to the tree.
        error: Error message when ``success`` is False.
    """

    success: bool
    path: str
    summary: ReconcileSummary = field(default_factory=ReconcileSummary)
    error: str | None = None

    @classmethod
    def failure(cls, path: str, error: str) -> ScanOutcome:
        """Create a failed outcome with no mutations."""
        return cls(success=False, path=path, error=error)

    def merge(self, other: ScanOutcome) -> ScanOutcome:
        """Combine with the outcome of a follow-up pass."""
        errors = [e for e in (self.error, other.error) if e]
        return ScanOutcome(
            success=self.success and other.success,
            path=self.path,
            summary=self.summary + other.summary,
            error="; ".join(errors) or None,
        )


@dataclass(frozen=True, slots=True)
class UploadResult:
    """Result of uploading an image into the tree.

    Attributes:
        success: Whether the image was written and registered.
        node_id: Id of the created tree node.
        image_id: Id of the created registry record.
        path: Tree path of the image.
        eye_detection: Detection result if detection was requested and succeeded.
        error: Error message on failure.
    """

    success: bool
    node_id: str | None = None
    image_id: str | None = None
    path: str | None = None
    eye_detection: EyeDetectionResult | None = None
    error: str | None = None


@dataclass(frozen=True, slots=True)
class DirectoryInfo:
    """Stat summary of a filesystem entry.

    Attributes:
        path: Path as requested.
        name: Final path component.
        is_directory: Entry is a directory (symlinks followed).
        size: Size in bytes.
        last_modified: Modification time as a POSIX timestamp.
    """

    path: str
    name: str
    is_directory: bool
    size: int
    last_modified: float


@dataclass(frozen=True, slots=True)
class DirectoryInfoResult:
    """Result of get_directory_info."""

    success: bool
    info: DirectoryInfo | None = None
    error: str | None = None

    @classmethod
    def failure(cls, error: str) -> DirectoryInfoResult:
        """Create a failed result."""
        return cls(success=False, error=error)


@dataclass(slots=True)
class DetectionBatch:
    """Outcome of a batch of eye detections.

    Attributes:
        detected: Tree path to result for images that were classified.
        failed: Tree path to error message for images left undetected.
    """

    detected: dict[str, EyeDetectionResult] = field(default_factory=lambda: {})
    failed: dict[str, str] = field(default_factory=lambda: {})

    @property
    def total(self) -> int:
        """Number of images dispatched."""
        return len(self.detected) + len(self.failed)


def _collapse_bases(bases: Iterable[str]) -> list[str]:
    """Drop tree paths that are covered by another path in the set."""
    unique = sorted(set(bases))
    if ROOT_PATH in unique:
        return [ROOT_PATH]
    return [b for b in unique if not any(is_under(b, other) for other in unique if other != b)]


class DirectoryCoordinator:
    """Application-facing operations over one scanned root.

    All tree and registry mutation happens on the event loop thread.
    Blocking filesystem work runs in worker threads and watch events are
    posted back to the loop.
    """

    def __init__(
        self,
        store: DirectoryTreeStore | None = None,
        fs: FilesystemAccess | None = None,
        detector: EyeDetector | None = None,
        config: BlinkctlConfig | None = None,
    ) -> None:
        self.store = store if store is not None else DirectoryTreeStore()
        self.config = config if config is not None else BlinkctlConfig()
        self.detector = detector
        self._fs = fs if fs is not None else LocalFilesystem()
        self._scanner = FilesystemScanner(self._fs)
        self._watcher = ChangeWatcher(self._on_change, self._fs)
        self._root_path: Path | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._inflight: dict[Path, asyncio.Task[ScanOutcome]] = {}
        self._pending: dict[Path, set[str]] = {}
        self._watch_tasks: set[asyncio.Task[ScanOutcome]] = set()
        self._refresh_listeners: list[Callable[[ScanOutcome], None]] = []

    @property
    def root_path(self) -> Path | None:
        """Filesystem path mirrored by the tree root, None before the first scan."""
        return self._root_path

    @property
    def watcher(self) -> ChangeWatcher:
        """The change watcher used by ``watch_directory``."""
        return self._watcher

    def add_refresh_listener(self, listener: Callable[[ScanOutcome], None]) -> None:
        """Register a callback invoked after each watch-triggered refresh."""
        self._refresh_listeners.append(listener)

    # -------------------------------------------------------------------------
    # Scanning
    # -------------------------------------------------------------------------

    async def scan_directory_structure(self, path: str | Path) -> ScanOutcome:
        """Scan ``path`` and reconcile it into the whole tree.

        Scanning a different directory than the current root replaces the
        tree contents once the new scan has succeeded.
        """
        root = Path(path).expanduser().resolve()
        return await self._serialized(root, ROOT_PATH)

    async def refresh_directory(self, path: str | Path | None = None) -> ScanOutcome:
        """Re-scan the root or a directory below it and reconcile.

        Args:
            path: Filesystem path inside the scanned root. None refreshes
                the whole root.

        Returns:
            ScanOutcome; a failure if nothing was scanned yet or the path is
            outside the root.
        """
        root = self._root_path
        if root is None:
            return ScanOutcome.failure(ROOT_PATH, "No directory has been scanned")
        if path is None:
            return await self._serialized(root, ROOT_PATH)

        target = Path(path).expanduser().resolve()
        try:
            relative = target.relative_to(root)
        except ValueError:
            return ScanOutcome.failure(ROOT_PATH, f"Path is outside the scanned root: {target}")
        return await self._serialized(root, self._nearest_directory(relative.as_posix()))

    def _nearest_directory(self, relative: str) -> str:
        """Tree path of the closest existing directory node for a relative path."""
        candidate = PurePosixPath(relative)
        while candidate.parts and str(candidate) != ".":
            node = self.store.get_node_by_path(to_tree_path(candidate.as_posix()))
            if node is not None and node.is_directory:
                return node.path
            candidate = candidate.parent
        return ROOT_PATH

    async def _serialized(self, root: Path, base: str) -> ScanOutcome:
        running = self._inflight.get(root)
        if running is not None and not running.done():
            logger.debug("Reconcile of %s in flight, queueing %s", root, base)
            self._pending.setdefault(root, set()).add(base)
            return await asyncio.shield(running)

        task = asyncio.create_task(self._reconcile_until_settled(root, base))
        self._inflight[root] = task

        def release(finished: asyncio.Task[ScanOutcome]) -> None:
            if self._inflight.get(root) is finished:
                del self._inflight[root]
                self._pending.pop(root, None)

        task.add_done_callback(release)
        return await task

    async def _reconcile_until_settled(self, root: Path, base: str) -> ScanOutcome:
        outcome = await self._scan_and_reconcile(root, base)
        while self._pending.get(root):
            for pending_base in _collapse_bases(self._pending.pop(root)):
                outcome = outcome.merge(await self._scan_and_reconcile(root, pending_base))
        return outcome

    async def _scan_and_reconcile(self, root: Path, base: str) -> ScanOutcome:
        target = root / base.lstrip("/") if base != ROOT_PATH else root
        scan = await self._scanner.scan(
            target,
            include_images=self.config.scan.include_images,
            include_subdirectories=self.config.scan.include_subdirectories,
        )
        if not scan.success:
            if base != ROOT_PATH and self._root_path == root:
                # The directory itself may be gone; its parent still lists it
                parent = str(PurePosixPath(base).parent)
                logger.debug("Scan of %s failed, refreshing %s instead", target, parent)
                return await self._scan_and_reconcile(root, parent)
            logger.warning("Scan of %s failed: %s", target, scan.error)
            return ScanOutcome.failure(base, scan.error or "Scan failed")

        # Everything below runs without suspending
        if self._root_path != root:
            if base != ROOT_PATH:
                return ScanOutcome.failure(base, f"{root} is no longer the scanned root")
            self._switch_root(root)

        summary = reconcile_scan(self.store, scan, base)
        if logger.isEnabledFor(logging.DEBUG):
            for problem in self.store.check_consistency():
                logger.error("Tree inconsistency after reconcile: %s", problem)
        return ScanOutcome(success=True, path=base, summary=summary)

    def _switch_root(self, root: Path) -> None:
        previous = self._root_path
        if previous is not None:
            logger.info("Switching scanned root from %s to %s", previous, root)
            self.store.clear()
            self.store.images.clear()
            self._watcher.stop_watching(previous)
        self._root_path = root

    def _fs_path(self, tree_path: str) -> Path:
        if self._root_path is None:
            msg = "No directory has been scanned"
            raise RuntimeError(msg)
        return self._root_path / tree_path.lstrip("/")

    # -------------------------------------------------------------------------
    # Directory info
    # -------------------------------------------------------------------------

    async def get_directory_info(self, path: str | Path) -> DirectoryInfoResult:
        """Stat a filesystem path without touching the tree.

        Args:
            path: Filesystem path to describe. It need not be inside the
                scanned root.

        Returns:
            DirectoryInfoResult with the entry details, or a failure when
            the path cannot be stat'ed.
        """
        fs_path = Path(path).expanduser()
        try:
            stat = await asyncio.to_thread(self._fs.stat, fs_path)
        except OSError as e:
            logger.debug("Cannot stat %s: %s", fs_path, e)
            return DirectoryInfoResult.failure(f"Cannot read {fs_path}: {e.strerror or e}")

        return DirectoryInfoResult(
            success=True,
            info=DirectoryInfo(
                path=str(path),
                name=fs_path.name,
                is_directory=stat.is_directory,
                size=stat.size,
                last_modified=stat.mtime,
            ),
        )

    # -------------------------------------------------------------------------
    # Watching
    # -------------------------------------------------------------------------

    async def watch_directory(self, path: str | Path, recursive: bool | None = None) -> None:
        """Watch ``path`` and refresh the affected subtree on changes.

        Args:
            path: Directory to watch, normally the scanned root.
            recursive: Watch subdirectories; defaults to the configured value.

        Raises:
            WatchTargetNotFoundError: If the path does not exist.
        """
        self._loop = asyncio.get_running_loop()
        if recursive is None:
            recursive = self.config.watch.recursive
        self._watcher.watch(path, recursive)

    def stop_watching(self, path: str | Path) -> bool:
        """Release the watch on ``path``. Returns False if it was not watched."""
        return self._watcher.stop_watching(path)

    def _on_change(self, watched: Path, event: ChangeEvent) -> None:
        # Called from the watcher thread
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._handle_change, watched, event)

    def _handle_change(self, watched: Path, event: ChangeEvent) -> None:
        root = self._root_path
        if root is None:
            return

        changed_dir = watched
        if event.filename:
            changed_dir = (watched / event.filename).parent
        try:
            relative = changed_dir.relative_to(root)
        except ValueError:
            logger.debug("Ignoring change outside scanned root: %s", changed_dir)
            return

        base = self._nearest_directory(relative.as_posix())
        task = asyncio.ensure_future(self._serialized(root, base))
        self._watch_tasks.add(task)
        task.add_done_callback(self._finish_watch_refresh)

    def _finish_watch_refresh(self, task: asyncio.Task[ScanOutcome]) -> None:
        self._watch_tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Watch-triggered refresh failed: %s", exc)
            return
        outcome = task.result()
        for listener in self._refresh_listeners:
            listener(outcome)

    # -------------------------------------------------------------------------
    # Uploads
    # -------------------------------------------------------------------------

    async def upload_image_to_directory(
        self,
        file_bytes: bytes,
        file_name: str,
        mime_type: str,
        dir_path: str = ROOT_PATH,
        detect: bool = False,
    ) -> UploadResult:
        """Write an image into a tree directory and register it.

        An existing node at the same path is replaced.

        Args:
            file_bytes: Raw image content.
            file_name: Name of the new file.
            mime_type: Declared MIME type.
            dir_path: Tree path of the target directory.
            detect: Run eye detection on the uploaded image.

        Returns:
            UploadResult with the created node and registry ids.
        """
        if self._root_path is None:
            return UploadResult(success=False, error="No directory has been scanned")

        name = PurePosixPath(file_name).name
        if not name or name in (".", ".."):
            return UploadResult(success=False, error=f"Invalid file name: {file_name!r}")

        directory = self.store.get_node_by_path(dir_path)
        if directory is None or not directory.is_directory:
            return UploadResult(success=False, error=f"Directory not in tree: {dir_path}")

        path = to_tree_path(name, directory.path)
        fs_path = self._fs_path(path)
        try:
            await asyncio.to_thread(self._fs.write_file_bytes, fs_path, file_bytes)
            stat = await asyncio.to_thread(self._fs.stat, fs_path)
        except OSError as e:
            logger.warning("Failed to write upload %s: %s", fs_path, e)
            return UploadResult(success=False, path=path, error=str(e))

        # The directory may have been removed while writing
        directory = self.store.get_node_by_path(dir_path)
        if directory is None or not directory.is_directory:
            return UploadResult(
                success=False, path=path, error=f"Directory not in tree: {dir_path}"
            )

        existing = self.store.get_node_by_path(path)
        if existing is not None:
            self._remove_with_records(existing)

        dimensions = probe_dimensions(file_bytes[:HEADER_SIZE])
        node_id = self.store.add_image_node(
            name=name,
            path=path,
            parent_id=directory.id,
            mime_type=mime_type,
            size=stat.size,
            last_modified=stat.mtime,
            dimensions=dimensions,
        )
        image_id = self.store.images.add_image(
            name=name,
            path=path,
            mime_type=mime_type,
            size=stat.size,
            last_modified=stat.mtime,
            dimensions=dimensions,
        )
        logger.info("Uploaded %s (%d bytes)", path, stat.size)

        eye_detection = None
        if detect:
            batch = await self._detect_paths([path], preloaded={path: file_bytes})
            eye_detection = batch.detected.get(path)

        return UploadResult(
            success=True,
            node_id=node_id,
            image_id=image_id,
            path=path,
            eye_detection=eye_detection,
        )

    def _remove_with_records(self, node: DirectoryNode) -> None:
        for descendant in [node, *self._descendants(node)]:
            record = self.store.images.get_image_by_path(descendant.path)
            if record is not None:
                self.store.images.remove_image(record.id)
        self.store.remove_node(node.id)

    @staticmethod
    def _descendants(node: DirectoryNode) -> list[DirectoryNode]:
        found: list[DirectoryNode] = []
        stack = list(node.children)
        while stack:
            current = stack.pop()
            found.append(current)
            stack.extend(current.children)
        return found

    # -------------------------------------------------------------------------
    # Eye detection
    # -------------------------------------------------------------------------

    async def detect_eyes_for_selected_images(self) -> DetectionBatch:
        """Run eye detection on every selected image."""
        return await self._detect_paths([image.path for image in self.selected_images()])

    async def detect_eyes_for_directory(self, path: str = ROOT_PATH) -> DetectionBatch:
        """Run eye detection on every image below tree path ``path``."""
        prefix = path if path.endswith("/") else f"{path}/"
        nodes = self.store.get_image_nodes_by_directory(prefix)
        return await self._detect_paths([node.path for node in nodes])

    async def _detect_paths(
        self,
        paths: list[str],
        preloaded: dict[str, bytes] | None = None,
    ) -> DetectionBatch:
        batch = DetectionBatch()
        unique_paths = list(dict.fromkeys(paths))
        if not unique_paths:
            return batch

        detector = self.detector
        if detector is None:
            for path in unique_paths:
                batch.failed[path] = "No eye detector configured"
            return batch

        semaphore = asyncio.Semaphore(self.config.detection.max_concurrent)
        preloaded = preloaded or {}

        async def run(path: str) -> None:
            async with semaphore:
                try:
                    data = preloaded.get(path)
                    if data is None:
                        fs_path = self._fs_path(path)
                        data = await asyncio.to_thread(self._fs.read_file_bytes, fs_path)
                    outcome = await detector.detect(data)
                    if outcome is None:
                        raise DetectionError("Detector returned no result")
                # Any detector failure leaves the image undetected
                except Exception as e:
                    logger.warning("Eye detection failed for %s: %s", path, e)
                    batch.failed[path] = str(e) or type(e).__name__
                    return

            result = EyeDetectionResult.now(outcome.is_open, outcome.confidence)
            if self._apply_detection(path, result):
                batch.detected[path] = result
            else:
                batch.failed[path] = "Image is no longer in the tree"

        await asyncio.gather(*(run(path) for path in unique_paths))
        logger.info(
            "Eye detection finished: %d detected, %d failed",
            len(batch.detected),
            len(batch.failed),
        )
        return batch

    def _apply_detection(self, path: str, result: EyeDetectionResult) -> bool:
        """Write a result onto the tree node and the registry record for ``path``."""
        node = self.store.get_node_by_path(path)
        if node is None or not self.store.set_eye_detection(node.id, result):
            return False
        record = self.store.images.get_image_by_path(path)
        if record is not None:
            self.store.images.update_eye_detection(record.id, result)
        return True

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def selected_images(self) -> list[ImageInfo]:
        """Images selected in the tree or in the registry, joined by path."""
        records = {image.path: image for image in self.store.images.all_images}
        selected: dict[str, ImageInfo] = {}
        for node in self.store.selected_image_nodes:
            record = records.get(node.path)
            if record is not None:
                selected.setdefault(record.path, record)
        for record in self.store.images.selected_images:
            selected.setdefault(record.path, record)
        return list(selected.values())

    def filter_selected_images(self, kind: ImageFilter | str) -> list[ImageInfo]:
        """Selected images matching ``kind`` (open-eyes, closed-eyes, undetected)."""
        image_filter = ImageFilter(kind)
        return [image for image in self.selected_images() if image_filter.matches(image)]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Stop all watches and cancel outstanding refreshes."""
        self._watcher.stop_all()
        for task in [*self._watch_tasks, *self._inflight.values()]:
            task.cancel()
        self._watch_tasks.clear()

    def dispose(self) -> None:
        """Close and dispose the store. The coordinator is unusable afterwards."""
        self.close()
        self.store.dispose()
