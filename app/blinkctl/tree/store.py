"""Directory tree store.

Owns the node graph (root plus flat index), structural mutations,
selection/expansion state and aggregate statistics. All mutation goes
through named operations; callers never write node fields directly.

Invariant: the flat index contains exactly the nodes reachable from the
root, and every non-root node appears exactly once in its parent's
children.
"""

import logging
from collections.abc import Iterator, Mapping
from types import MappingProxyType

from blinkctl.core.errors import BlinkctlError
from blinkctl.core.ids import ROOT_ID, new_id
from blinkctl.images.registry import ImageRegistry
from blinkctl.models.node import (
    Dimensions,
    DirectoryNode,
    DirectoryStats,
    EyeDetectionResult,
    ImageMetadata,
    NodeKind,
)

logger = logging.getLogger(__name__)

ROOT_PATH = "/"
ROOT_NAME = "Root"

# Sentinel for "argument not given" in partial metadata updates
_UNSET = object()


class TreeDisposedError(BlinkctlError):
    """Raised when a disposed tree store is used."""


class DirectoryTreeStore:
    """In-memory tree of directory and image nodes.

    Selection and expansion are id sets; ``node.is_expanded`` is a cache
    of the expanded set. Operations referencing unknown ids are no-ops
    and report it through their return value.

    After ``dispose()`` the store is terminal and every operation raises
    TreeDisposedError.
    """

    def __init__(self, images: ImageRegistry | None = None) -> None:
        self._images = images if images is not None else ImageRegistry()
        self._root = DirectoryNode(
            id=ROOT_ID,
            name=ROOT_NAME,
            kind=NodeKind.DIRECTORY,
            path=ROOT_PATH,
            parent_id=None,
            is_expanded=True,
        )
        self._flat_index: dict[str, DirectoryNode] = {ROOT_ID: self._root}
        self._selected_ids: set[str] = set()
        self._expanded_ids: set[str] = {ROOT_ID}
        self._disposed = False

    def _ensure_active(self) -> None:
        if self._disposed:
            msg = "Directory tree store has been disposed"
            raise TreeDisposedError(msg)

    # -------------------------------------------------------------------------
    # Structure
    # -------------------------------------------------------------------------

    def _attach(self, node: DirectoryNode) -> str | None:
        parent = self._flat_index.get(node.parent_id or "")
        if parent is None or not parent.is_directory:
            logger.debug(
                "Cannot attach %s: parent %s is not a known directory",
                node.path,
                node.parent_id,
            )
            return None
        parent.children.append(node)
        self._flat_index[node.id] = node
        return node.id

    def add_directory(self, name: str, path: str, parent_id: str = ROOT_ID) -> str | None:
        """Create a directory node under ``parent_id``.

        Returns:
            The new node id, or None if the parent does not resolve to a
            directory.
        """
        self._ensure_active()
        node = DirectoryNode(
            id=new_id(),
            name=name,
            kind=NodeKind.DIRECTORY,
            path=path,
            parent_id=parent_id,
        )
        return self._attach(node)

    def add_image_node(
        self,
        name: str,
        path: str,
        parent_id: str,
        mime_type: str,
        size: int,
        last_modified: float,
        dimensions: Dimensions | None = None,
        eye_detection: EyeDetectionResult | None = None,
    ) -> str | None:
        """Create an image node under ``parent_id``.

        Returns:
            The new node id, or None if the parent does not resolve to a
            directory.
        """
        self._ensure_active()
        node = DirectoryNode(
            id=new_id(),
            name=name,
            kind=NodeKind.IMAGE,
            path=path,
            parent_id=parent_id,
            metadata=ImageMetadata(
                size=size,
                last_modified=last_modified,
                mime_type=mime_type,
                dimensions=dimensions,
                eye_detection=eye_detection,
            ),
        )
        return self._attach(node)

    def remove_node(self, node_id: str) -> bool:
        """Remove a node and all of its descendants.

        The node is unlinked from its parent, and it and every descendant
        are purged from the flat index, the selection and the expansion
        set. The root cannot be removed.

        Returns:
            True if a node was removed, False for unknown ids and the root.
        """
        self._ensure_active()
        node = self._flat_index.get(node_id)
        if node is None or node_id == ROOT_ID:
            return False

        parent = self._flat_index.get(node.parent_id or "")
        if parent is not None:
            parent.children = [child for child in parent.children if child is not node]

        stack = [node]
        while stack:
            current = stack.pop()
            stack.extend(current.children)
            self._flat_index.pop(current.id, None)
            self._selected_ids.discard(current.id)
            self._expanded_ids.discard(current.id)
        return True

    def clear(self) -> None:
        """Remove every node below the root and reset selection."""
        self._ensure_active()
        for child in list(self._root.children):
            self.remove_node(child.id)
        self._selected_ids.clear()

    # -------------------------------------------------------------------------
    # Node state
    # -------------------------------------------------------------------------

    def toggle_node_selection(self, node_id: str) -> bool:
        """Toggle selection of a node.

        Returns:
            True if the node is selected after the call. Unknown ids are
            ignored and return False.
        """
        self._ensure_active()
        if node_id in self._selected_ids:
            self._selected_ids.discard(node_id)
            return False
        if node_id not in self._flat_index:
            return False
        self._selected_ids.add(node_id)
        return True

    def select_nodes(self, node_ids: list[str]) -> None:
        """Replace the node selection with the known ids among ``node_ids``."""
        self._ensure_active()
        self._selected_ids = {i for i in node_ids if i in self._flat_index}

    def clear_selection(self) -> None:
        """Deselect all nodes."""
        self._ensure_active()
        self._selected_ids.clear()

    def toggle_node_expansion(self, node_id: str) -> bool:
        """Toggle expansion of a directory node.

        Returns:
            True if the node was toggled, False for unknown ids and images.
        """
        self._ensure_active()
        node = self._flat_index.get(node_id)
        if node is None or not node.is_directory:
            return False

        if node_id in self._expanded_ids:
            self._expanded_ids.discard(node_id)
        else:
            self._expanded_ids.add(node_id)
        node.is_expanded = node_id in self._expanded_ids
        return True

    def update_image_metadata(
        self,
        node_id: str,
        *,
        size: int | object = _UNSET,
        last_modified: float | object = _UNSET,
        mime_type: str | object = _UNSET,
        dimensions: Dimensions | None | object = _UNSET,
    ) -> bool:
        """Replace file metadata fields of an image node.

        Only the given fields are replaced; the eye-detection result is
        left alone.

        Returns:
            True if the node is an image and was updated.
        """
        self._ensure_active()
        node = self._flat_index.get(node_id)
        if node is None or node.metadata is None:
            return False

        metadata = node.metadata
        if size is not _UNSET:
            metadata.size = size  # type: ignore[assignment]
        if last_modified is not _UNSET:
            metadata.last_modified = last_modified  # type: ignore[assignment]
        if mime_type is not _UNSET:
            metadata.mime_type = mime_type  # type: ignore[assignment]
        if dimensions is not _UNSET:
            metadata.dimensions = dimensions  # type: ignore[assignment]
        return True

    def set_eye_detection(self, node_id: str, result: EyeDetectionResult | None) -> bool:
        """Set or clear the eye-detection result of an image node.

        Returns:
            True if the node is an image and was updated.
        """
        self._ensure_active()
        node = self._flat_index.get(node_id)
        if node is None or node.metadata is None:
            return False
        node.metadata.eye_detection = result
        return True

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_node(self, node_id: str) -> DirectoryNode | None:
        """Get a node by id."""
        self._ensure_active()
        return self._flat_index.get(node_id)

    def get_node_by_path(self, path: str) -> DirectoryNode | None:
        """Find the node with the given path (linear scan)."""
        self._ensure_active()
        for node in self._flat_index.values():
            if node.path == path:
                return node
        return None

    def get_image_nodes_by_directory(self, prefix: str) -> list[DirectoryNode]:
        """Get image nodes whose path starts with ``prefix``.

        This is a plain string-prefix test: "/Pictures" also matches
        "/Pictures2/a.png". Pass a trailing "/" to restrict to one directory.
        """
        self._ensure_active()
        return [
            node
            for node in self._flat_index.values()
            if node.is_image and node.path.startswith(prefix)
        ]

    def get_directory_stats(self, prefix: str) -> DirectoryStats:
        """Aggregate statistics over the image nodes matching ``prefix``.

        ``average_confidence`` is averaged over detected images only and is
        0.0 when nothing has been detected.
        """
        image_nodes = self.get_image_nodes_by_directory(prefix)

        open_count = 0
        closed_count = 0
        total_size = 0
        total_confidence = 0.0
        detected_count = 0

        for node in image_nodes:
            if node.metadata is None:
                continue
            total_size += node.metadata.size
            detection = node.metadata.eye_detection
            if detection is None:
                continue
            if detection.is_open:
                open_count += 1
            else:
                closed_count += 1
            total_confidence += detection.confidence
            detected_count += 1

        return DirectoryStats(
            total_images=len(image_nodes),
            open_eye_images=open_count,
            closed_eye_images=closed_count,
            total_size=total_size,
            average_confidence=total_confidence / detected_count if detected_count else 0.0,
        )

    @property
    def total_stats(self) -> DirectoryStats:
        """Statistics over the whole tree."""
        return self.get_directory_stats(ROOT_PATH)

    @property
    def selected_nodes(self) -> list[DirectoryNode]:
        """Selected nodes."""
        self._ensure_active()
        return [self._flat_index[i] for i in self._selected_ids if i in self._flat_index]

    @property
    def selected_image_nodes(self) -> list[DirectoryNode]:
        """Selected image nodes."""
        return [node for node in self.selected_nodes if node.is_image]

    @property
    def selected_node_ids(self) -> frozenset[str]:
        """Snapshot of the selected id set."""
        self._ensure_active()
        return frozenset(self._selected_ids)

    @property
    def expanded_node_ids(self) -> frozenset[str]:
        """Snapshot of the expanded id set."""
        self._ensure_active()
        return frozenset(self._expanded_ids)

    @property
    def expanded_directories(self) -> list[DirectoryNode]:
        """Expanded directory nodes."""
        self._ensure_active()
        return [
            self._flat_index[i]
            for i in self._expanded_ids
            if i in self._flat_index and self._flat_index[i].is_directory
        ]

    @property
    def root(self) -> DirectoryNode:
        """The root node."""
        self._ensure_active()
        return self._root

    @property
    def flat_index(self) -> Mapping[str, DirectoryNode]:
        """Read-only view of the id-to-node mapping."""
        self._ensure_active()
        return MappingProxyType(self._flat_index)

    @property
    def images(self) -> ImageRegistry:
        """The image registry owned by this store."""
        self._ensure_active()
        return self._images

    def __len__(self) -> int:
        self._ensure_active()
        return len(self._flat_index)

    def iter_nodes(self) -> Iterator[DirectoryNode]:
        """Walk the tree depth-first from the root (root included)."""
        self._ensure_active()
        stack = [self._root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def check_consistency(self) -> list[str]:
        """Check the tree/flat-index invariant.

        Returns:
            Human-readable violations, empty if the tree is consistent.
        """
        self._ensure_active()
        problems: list[str] = []
        reachable: set[str] = set()

        for node in self.iter_nodes():
            if node.id in reachable:
                problems.append(f"Node {node.id} ({node.path}) is reachable twice")
                continue
            reachable.add(node.id)
            if self._flat_index.get(node.id) is not node:
                problems.append(f"Reachable node {node.id} ({node.path}) missing from index")
            if node.is_image and node.children:
                problems.append(f"Image node {node.id} ({node.path}) has children")
            for child in node.children:
                if child.parent_id != node.id:
                    problems.append(
                        f"Child {child.id} of {node.id} has parent_id {child.parent_id}"
                    )

        for node_id in self._flat_index.keys() - reachable:
            problems.append(f"Indexed node {node_id} is not reachable from root")
        for node_id in self._selected_ids - self._flat_index.keys():
            problems.append(f"Selected id {node_id} is not in the index")
        for node_id in self._expanded_ids - self._flat_index.keys():
            problems.append(f"Expanded id {node_id} is not in the index")
        return problems

    def dispose(self) -> None:
        """Release the registry and clear all state. The store is unusable afterwards."""
        if self._disposed:
            return
        self._images.dispose()
        self._flat_index.clear()
        self._root.children = []
        self._selected_ids.clear()
        self._expanded_ids.clear()
        self._disposed = True

    @property
    def is_disposed(self) -> bool:
        """Check if the store has been disposed."""
        return self._disposed
