"""Image registry record.

Registry records are independent of tree nodes: they carry their own
identifier and are joined to tree nodes by ``path`` only.
"""

from dataclasses import dataclass
from typing import Any

from blinkctl.models.node import Dimensions, EyeDetectionResult


@dataclass(frozen=True, slots=True)
class ImageInfo:
    """Represents an image tracked by the image registry.

    Immutable; updates replace the stored record with a merged copy.

    Attributes:
        id: Registry identifier (not the tree node id).
        name: File name.
        path: Root-anchored POSIX path, the join key with tree nodes.
        mime_type: MIME type derived from the file extension.
        size: File size in bytes.
        last_modified: Modification time as a POSIX timestamp.
        dimensions: Pixel dimensions if known.
        eye_detection: Eye-detection result, None until detected.
    """

    id: str
    name: str
    path: str
    mime_type: str
    size: int
    last_modified: float
    dimensions: Dimensions | None = None
    eye_detection: EyeDetectionResult | None = None

    def __post_init__(self) -> None:
        """Validate image data after initialization."""
        if not self.path:
            msg = "Image path cannot be empty"
            raise ValueError(msg)
        if self.size < 0:
            msg = f"Image size cannot be negative, got {self.size}"
            raise ValueError(msg)

    @property
    def is_detected(self) -> bool:
        """Check if eye detection has produced a result."""
        return self.eye_detection is not None

    @property
    def is_open(self) -> bool:
        """Check if the image was detected with open eyes."""
        return self.eye_detection is not None and self.eye_detection.is_open

    @property
    def is_closed(self) -> bool:
        """Check if the image was detected with closed eyes."""
        return self.eye_detection is not None and not self.eye_detection.is_open

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "mime_type": self.mime_type,
            "size": self.size,
            "last_modified": self.last_modified,
            "dimensions": self.dimensions.to_dict() if self.dimensions else None,
            "eye_detection": self.eye_detection.to_dict() if self.eye_detection else None,
        }
