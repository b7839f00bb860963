"""Image registry: flat keyed store of image records.

Records are keyed by their own registry id. Tree nodes use different
ids, so reconciliation joins the two by ``path``.
"""

import dataclasses
import logging
from collections.abc import Iterable
from typing import Any

from blinkctl.core.ids import new_id
from blinkctl.models.image import ImageInfo
from blinkctl.models.node import Dimensions, EyeDetectionResult

logger = logging.getLogger(__name__)


class ImageRegistry:
    """Keyed store of ImageInfo records plus an image selection set.

    Derived views (open/closed/detected/undetected, total size) are
    computed on every read, so they only depend on the record state.
    Operations on unknown ids do nothing and report it by returning False.
    """

    def __init__(self) -> None:
        self._images: dict[str, ImageInfo] = {}
        self._selected_ids: set[str] = set()

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def add_image(
        self,
        name: str,
        path: str,
        mime_type: str,
        size: int,
        last_modified: float,
        dimensions: Dimensions | None = None,
        eye_detection: EyeDetectionResult | None = None,
    ) -> str:
        """Add an image record.

        Returns:
            The new registry id.
        """
        image_id = new_id()
        self._images[image_id] = ImageInfo(
            id=image_id,
            name=name,
            path=path,
            mime_type=mime_type,
            size=size,
            last_modified=last_modified,
            dimensions=dimensions,
            eye_detection=eye_detection,
        )
        return image_id

    def update_image(self, image_id: str, **changes: Any) -> bool:
        """Merge field changes into an image record.

        Each given field replaces the stored value (last write wins).

        Args:
            image_id: Registry id of the record.
            **changes: ImageInfo fields to replace.

        Returns:
            True if the record exists and was updated, False otherwise.

        Raises:
            TypeError: If a change names an unknown field.
            ValueError: If ``id`` is part of the changes.
        """
        if "id" in changes:
            msg = "Image id cannot be changed"
            raise ValueError(msg)

        image = self._images.get(image_id)
        if image is None:
            logger.debug("Ignoring update for unknown image %s", image_id)
            return False

        self._images[image_id] = dataclasses.replace(image, **changes)
        return True

    def remove_image(self, image_id: str) -> bool:
        """Remove an image record and drop it from the selection.

        Returns:
            True if a record was removed.
        """
        self._selected_ids.discard(image_id)
        return self._images.pop(image_id, None) is not None

    def update_eye_detection(self, image_id: str, result: EyeDetectionResult | None) -> bool:
        """Set the eye-detection result of an existing record.

        Unknown ids are ignored; no placeholder record is created.

        Returns:
            True if the record exists and was updated.
        """
        if image_id not in self._images:
            return False
        return self.update_image(image_id, eye_detection=result)

    def get_image(self, image_id: str) -> ImageInfo | None:
        """Get a record by registry id."""
        return self._images.get(image_id)

    def get_image_by_path(self, path: str) -> ImageInfo | None:
        """Find the record with the given path."""
        for image in self._images.values():
            if image.path == path:
                return image
        return None

    def get_images_by_directory(self, prefix: str) -> list[ImageInfo]:
        """Get records whose path starts with ``prefix`` (plain string test)."""
        return [image for image in self._images.values() if image.path.startswith(prefix)]

    # -------------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------------

    def toggle_image_selection(self, image_id: str) -> bool:
        """Toggle selection of an image.

        Returns:
            True if the image is selected after the call.
        """
        if image_id in self._selected_ids:
            self._selected_ids.discard(image_id)
            return False
        self._selected_ids.add(image_id)
        return True

    def clear_selection(self) -> None:
        """Deselect all images."""
        self._selected_ids.clear()

    def select_images(self, image_ids: Iterable[str]) -> None:
        """Replace the selection with the given ids."""
        self.clear_selection()
        self._selected_ids.update(image_ids)

    @property
    def selected_image_ids(self) -> list[str]:
        """Selected ids, including ids without a record."""
        return list(self._selected_ids)

    @property
    def selected_images(self) -> list[ImageInfo]:
        """Selected records that still exist."""
        return [self._images[i] for i in self._selected_ids if i in self._images]

    # -------------------------------------------------------------------------
    # Derived views
    # -------------------------------------------------------------------------

    @property
    def all_images(self) -> list[ImageInfo]:
        """All records in insertion order."""
        return list(self._images.values())

    @property
    def total_images(self) -> int:
        """Number of records."""
        return len(self._images)

    @property
    def total_size(self) -> int:
        """Sum of record sizes in bytes."""
        return sum(image.size for image in self._images.values())

    @property
    def open_eye_images(self) -> list[ImageInfo]:
        """Records detected with open eyes."""
        return [image for image in self._images.values() if image.is_open]

    @property
    def closed_eye_images(self) -> list[ImageInfo]:
        """Records detected with closed eyes."""
        return [image for image in self._images.values() if image.is_closed]

    @property
    def detected_images(self) -> list[ImageInfo]:
        """Records with an eye-detection result."""
        return [image for image in self._images.values() if image.is_detected]

    @property
    def undetected_images(self) -> list[ImageInfo]:
        """Records without an eye-detection result."""
        return [image for image in self._images.values() if not image.is_detected]

    def clear(self) -> None:
        """Drop all records and the selection."""
        self._images.clear()
        self._selected_ids.clear()

    def dispose(self) -> None:
        """Release all records and the selection."""
        self.clear()
