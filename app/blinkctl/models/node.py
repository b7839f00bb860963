"""Tree node models for the directory/image tree.

This module defines the node variant stored in the directory tree,
the per-image metadata attached to image nodes, eye-detection results
and aggregate directory statistics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class NodeKind(str, Enum):
    """Kind of a tree node.

    Attributes:
        DIRECTORY: Directory node with an ordered list of children.
        IMAGE: Image file node carrying metadata, never has children.
    """

    DIRECTORY = "directory"
    IMAGE = "image"


@dataclass(frozen=True, slots=True)
class Dimensions:
    """Pixel dimensions of an image.

    Attributes:
        width: Width in pixels.
        height: Height in pixels.
    """

    width: int
    height: int

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary for JSON serialization."""
        return {"width": self.width, "height": self.height}


@dataclass(frozen=True, slots=True)
class EyeDetectionResult:
    """Outcome of eye detection for a single image.

    A missing result (``None`` on the owning record) means the image has
    not been detected yet. It is never inferred from a falsy field.

    Attributes:
        is_open: Whether the eyes were classified as open.
        confidence: Classifier confidence score (0.0 to 1.0).
        timestamp: When the result was produced (ISO 8601, UTC).
    """

    is_open: bool
    confidence: float
    timestamp: str

    def __post_init__(self) -> None:
        """Validate detection data after initialization."""
        if not (0.0 <= self.confidence <= 1.0):
            msg = f"Confidence must be between 0.0 and 1.0, got {self.confidence}"
            raise ValueError(msg)

    @classmethod
    def now(cls, is_open: bool, confidence: float) -> EyeDetectionResult:
        """Create a result stamped with the current UTC time."""
        return cls(
            is_open=is_open,
            confidence=confidence,
            timestamp=datetime.now(UTC).isoformat(),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "is_open": self.is_open,
            "confidence": self.confidence,
            "timestamp": self.timestamp,
        }


@dataclass(slots=True)
class ImageMetadata:
    """Metadata attached to an image node.

    Attributes:
        size: File size in bytes.
        last_modified: Modification time as a POSIX timestamp.
        mime_type: MIME type derived from the file extension.
        dimensions: Pixel dimensions if they could be probed.
        eye_detection: Eye-detection result, None until detected.
    """

    size: int
    last_modified: float
    mime_type: str
    dimensions: Dimensions | None = None
    eye_detection: EyeDetectionResult | None = None


@dataclass(slots=True, eq=False)
class DirectoryNode:
    """Entry in the directory tree.

    Nodes compare by identity; the tree store owns them and mutates
    them in place.

    Attributes:
        id: Process-unique identifier, never reused.
        name: Display name (last path component).
        kind: Directory or image.
        path: Root-anchored POSIX path (``/`` for the root).
        parent_id: Identifier of the parent, None only for the root.
        children: Ordered child nodes (always empty for images).
        is_expanded: UI expansion flag, mirrors the store's expanded set.
        metadata: Image metadata, None for directories.
    """

    id: str
    name: str
    kind: NodeKind
    path: str
    parent_id: str | None = None
    children: list[DirectoryNode] = field(default_factory=lambda: [])
    is_expanded: bool = False
    metadata: ImageMetadata | None = None

    @property
    def is_directory(self) -> bool:
        """Check if node is a directory."""
        return self.kind == NodeKind.DIRECTORY

    @property
    def is_image(self) -> bool:
        """Check if node is an image."""
        return self.kind == NodeKind.IMAGE

    @property
    def eye_detection(self) -> EyeDetectionResult | None:
        """Eye-detection result of an image node, None otherwise."""
        if self.metadata is None:
            return None
        return self.metadata.eye_detection


@dataclass(frozen=True, slots=True)
class DirectoryStats:
    """Aggregate statistics over the images below a directory path.

    Attributes:
        total_images: Number of image nodes matched.
        open_eye_images: Images detected with open eyes.
        closed_eye_images: Images detected with closed eyes.
        total_size: Sum of image sizes in bytes.
        average_confidence: Mean confidence over detected images (0.0 if none).
    """

    total_images: int = 0
    open_eye_images: int = 0
    closed_eye_images: int = 0
    total_size: int = 0
    average_confidence: float = 0.0

    @property
    def undetected_images(self) -> int:
        """Number of images without a detection result."""
        return self.total_images - self.open_eye_images - self.closed_eye_images

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_images": self.total_images,
            "open_eye_images": self.open_eye_images,
            "closed_eye_images": self.closed_eye_images,
            "total_size": self.total_size,
            "average_confidence": self.average_confidence,
        }
