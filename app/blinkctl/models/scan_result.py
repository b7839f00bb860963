"""Scan result models.

A scan result is a flat description of a filesystem subtree,
independent of the in-memory tree. Paths are POSIX paths relative to
the scanned root.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from blinkctl.models.node import Dimensions


@dataclass(frozen=True, slots=True)
class ScanRequest:
    """Parameters of a scan, echoed back in the result.

    Attributes:
        root_path: Filesystem path that was requested.
        include_images: Whether image files are collected.
        include_subdirectories: Whether traversal descends below the root.
    """

    root_path: str
    include_images: bool = True
    include_subdirectories: bool = True

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "root_path": self.root_path,
            "include_images": self.include_images,
            "include_subdirectories": self.include_subdirectories,
        }


@dataclass(frozen=True, slots=True)
class ScannedDirectory:
    """Directory discovered during a scan.

    Attributes:
        path: Path relative to the scanned root (e.g., "holiday/beach").
        name: Directory name.
        parent_path: Relative path of the parent, None for root children.
    """

    path: str
    name: str
    parent_path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"path": self.path, "name": self.name, "parent_path": self.parent_path}


@dataclass(frozen=True, slots=True)
class ScannedImage:
    """Image file discovered during a scan.

    Attributes:
        path: Path relative to the scanned root.
        name: File name.
        parent_path: Relative path of the parent, None for root children.
        size: File size in bytes.
        last_modified: Modification time as a POSIX timestamp.
        mime_type: MIME type derived from the extension.
        dimensions: Probed pixel dimensions, None if unavailable.
    """

    path: str
    name: str
    parent_path: str | None
    size: int
    last_modified: float
    mime_type: str
    dimensions: Dimensions | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "path": self.path,
            "name": self.name,
            "parent_path": self.parent_path,
            "size": self.size,
            "last_modified": self.last_modified,
            "mime_type": self.mime_type,
            "dimensions": self.dimensions.to_dict() if self.dimensions else None,
        }


@dataclass(frozen=True, slots=True)
class ScanResult:
    """Flat result of scanning a directory.

    Attributes:
        success: Whether the scan ran. False only for validation failures.
        request: The original scan request.
        directories: Directories in depth-first order (parents first).
        images: Image files in depth-first order.
        error: Error message when ``success`` is False.
    """

    success: bool
    request: ScanRequest
    directories: list[ScannedDirectory] = field(default_factory=lambda: [])
    images: list[ScannedImage] = field(default_factory=lambda: [])
    error: str | None = None

    @classmethod
    def failure(cls, request: ScanRequest, error: str) -> ScanResult:
        """Create a failed result with no entries.

        Args:
            request: The request that failed validation.
            error: Human-readable reason.

        Returns:
            ScanResult with success=False and empty entry lists.
        """
        return cls(success=False, request=request, directories=[], images=[], error=error)

    @property
    def total_size(self) -> int:
        """Sum of all scanned image sizes in bytes."""
        return sum(image.size for image in self.images)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "success": self.success,
            "request": self.request.to_dict(),
            "directories": [d.to_dict() for d in self.directories],
            "images": [i.to_dict() for i in self.images],
            "error": self.error,
            "summary": {
                "directories": len(self.directories),
                "images": len(self.images),
                "total_size": self.total_size,
            },
        }
