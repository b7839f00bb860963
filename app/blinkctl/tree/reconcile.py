"""Reconciliation of scan results into the directory tree.

A scan result lists entries by path relative to the scanned directory.
Reconciling joins those paths onto a base tree path and then creates
missing nodes, updates changed image metadata and removes nodes that
are gone, keeping the ids of everything that is still present. Image
registry records are kept in step, joined by path.

Reconciliation never suspends, so a reader sees either the tree before
or after it, never a partially linked state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from blinkctl.images.registry import ImageRegistry
from blinkctl.models.image import ImageInfo
from blinkctl.models.node import DirectoryNode
from blinkctl.models.scan_result import ScannedImage, ScanResult
from blinkctl.tree.store import ROOT_PATH, DirectoryTreeStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconcileSummary:
    """Counts of tree mutations applied by a reconcile.

    Attributes:
        added: Nodes created.
        updated: Image nodes whose metadata changed.
        removed: Nodes removed, descendants included.
    """

    added: int = 0
    updated: int = 0
    removed: int = 0

    @property
    def changed(self) -> bool:
        """Check if any mutation was applied."""
        return bool(self.added or self.updated or self.removed)

    def __add__(self, other: ReconcileSummary) -> ReconcileSummary:
        return ReconcileSummary(
            added=self.added + other.added,
            updated=self.updated + other.updated,
            removed=self.removed + other.removed,
        )

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for JSON serialization."""
        return {"added": self.added, "updated": self.updated, "removed": self.removed}


def to_tree_path(relative: str | None, base: str = ROOT_PATH) -> str:
    """Join a scan-relative path onto a tree path.

    Args:
        relative: POSIX path relative to the scanned directory. None or ""
            stands for the scanned directory itself.
        base: Tree path of the scanned directory.

    Returns:
        Root-anchored tree path (e.g., "/holiday/beach.png").
    """
    relative = (relative or "").strip("/")
    if not relative:
        return base
    if base == ROOT_PATH:
        return f"/{relative}"
    return f"{base.rstrip('/')}/{relative}"


def is_under(path: str, base: str) -> bool:
    """Check if tree path ``path`` is strictly below tree path ``base``."""
    if base == ROOT_PATH:
        return path != ROOT_PATH
    return path.startswith(base.rstrip("/") + "/")


class _Reconciler:
    """Single reconcile pass over one subtree."""

    def __init__(self, store: DirectoryTreeStore, base_node: DirectoryNode) -> None:
        self.store = store
        self.registry: ImageRegistry = store.images
        self.base_node = base_node
        self.summary = ReconcileSummary()
        self.by_path: dict[str, DirectoryNode] = {}
        for node in store.iter_nodes():
            if is_under(node.path, base_node.path):
                self.by_path[node.path] = node
        self.records: dict[str, ImageInfo] = {
            image.path: image for image in self.registry.all_images
        }

    def lookup(self, path: str) -> DirectoryNode | None:
        if path == self.base_node.path:
            return self.base_node
        node = self.by_path.get(path)
        if node is None or self.store.get_node(node.id) is None:
            return None
        return node

    def remove(self, node: DirectoryNode) -> None:
        removed = 0
        stack = [node]
        while stack:
            current = stack.pop()
            stack.extend(current.children)
            removed += 1
            record = self.records.pop(current.path, None)
            if record is not None:
                self.registry.remove_image(record.id)
        if self.store.remove_node(node.id):
            self.summary.removed += removed

    def apply_directory(self, path: str, name: str, parent_path: str) -> None:
        node = self.lookup(path)
        if node is not None:
            if node.is_directory:
                return
            logger.debug("Entry %s changed from image to directory", path)
            self.remove(node)

        parent = self.lookup(parent_path)
        if parent is None:
            logger.warning("Skipping directory %s: parent %s not in tree", path, parent_path)
            return
        node_id = self.store.add_directory(name, path, parent.id)
        if node_id is None:
            return
        self.by_path[path] = self.store.flat_index[node_id]
        self.summary.added += 1

    def apply_image(self, path: str, parent_path: str, scanned: ScannedImage) -> None:
        node = self.lookup(path)
        if node is not None and node.is_directory:
            logger.debug("Entry %s changed from directory to image", path)
            self.remove(node)
            node = None

        if node is None:
            parent = self.lookup(parent_path)
            if parent is None:
                logger.warning("Skipping image %s: parent %s not in tree", path, parent_path)
                return
            node_id = self.store.add_image_node(
                name=scanned.name,
                path=path,
                parent_id=parent.id,
                mime_type=scanned.mime_type,
                size=scanned.size,
                last_modified=scanned.last_modified,
                dimensions=scanned.dimensions,
            )
            if node_id is None:
                return
            node = self.store.flat_index[node_id]
            self.by_path[path] = node
            self.summary.added += 1
        elif node.metadata is not None:
            metadata = node.metadata
            content_changed = (
                metadata.size != scanned.size or metadata.last_modified != scanned.last_modified
            )
            if content_changed or metadata.dimensions != scanned.dimensions:
                # An unchanged file keeps the MIME type it was registered with
                self.store.update_image_metadata(
                    node.id,
                    size=scanned.size,
                    last_modified=scanned.last_modified,
                    mime_type=scanned.mime_type if content_changed else metadata.mime_type,
                    dimensions=scanned.dimensions,
                )
                if content_changed and metadata.eye_detection is not None:
                    # Detection refers to the old file contents
                    self.store.set_eye_detection(node.id, None)
                self.summary.updated += 1

        self.sync_record(node)

    def sync_record(self, node: DirectoryNode) -> None:
        """Make the registry record for ``node.path`` match the node."""
        metadata = node.metadata
        if metadata is None:
            return
        fields: dict[str, Any] = {
            "name": node.name,
            "mime_type": metadata.mime_type,
            "size": metadata.size,
            "last_modified": metadata.last_modified,
            "dimensions": metadata.dimensions,
            "eye_detection": metadata.eye_detection,
        }
        record = self.records.get(node.path)
        if record is None:
            image_id = self.registry.add_image(path=node.path, **fields)
            added = self.registry.get_image(image_id)
            if added is not None:
                self.records[node.path] = added
            return

        if any(getattr(record, key) != value for key, value in fields.items()):
            self.registry.update_image(record.id, **fields)
            updated = self.registry.get_image(record.id)
            if updated is not None:
                self.records[node.path] = updated


def reconcile_scan(
    store: DirectoryTreeStore,
    scan: ScanResult,
    base: str = ROOT_PATH,
) -> ReconcileSummary:
    """Merge a scan result into the subtree at tree path ``base``.

    Nodes below ``base`` that the scan does not list are removed. Failed
    scans are ignored so a validation error never empties the tree.

    Args:
        store: Tree store to mutate.
        scan: Result of scanning the directory that ``base`` mirrors.
        base: Tree path of the scanned directory ("/" for the root).

    Returns:
        ReconcileSummary with the applied mutation counts. Reconciling the
        same scan again yields an all-zero summary.
    """
    summary = ReconcileSummary()
    if not scan.success:
        logger.debug("Not reconciling failed scan of %s", scan.request.root_path)
        return summary

    base_node = store.get_node_by_path(base)
    if base_node is None or not base_node.is_directory:
        logger.warning("Cannot reconcile into %s: no such directory node", base)
        return summary

    reconciler = _Reconciler(store, base_node)
    seen: set[str] = set()

    for directory in scan.directories:
        path = to_tree_path(directory.path, base)
        seen.add(path)
        reconciler.apply_directory(path, directory.name, to_tree_path(directory.parent_path, base))

    for image in scan.images:
        path = to_tree_path(image.path, base)
        seen.add(path)
        reconciler.apply_image(path, to_tree_path(image.parent_path, base), image)

    for path, node in list(reconciler.by_path.items()):
        if path in seen or store.get_node(node.id) is None:
            continue
        reconciler.remove(node)

    if reconciler.summary.changed:
        logger.debug(
            "Reconciled %s: +%d ~%d -%d",
            base,
            reconciler.summary.added,
            reconciler.summary.updated,
            reconciler.summary.removed,
        )
    return reconciler.summary
