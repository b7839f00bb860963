"""Unit tests for the image registry."""

import pytest
from blinkctl.images.registry import ImageRegistry
from blinkctl.models.node import EyeDetectionResult


@pytest.fixture
def registry() -> ImageRegistry:
    """Registry with three images: one open, one closed, one undetected."""
    reg = ImageRegistry()
    a = reg.add_image("a.png", "/a.png", "image/png", 100, 1.0)
    b = reg.add_image("b.png", "/trip/b.png", "image/png", 200, 1.0)
    reg.add_image("c.jpg", "/trip/c.jpg", "image/jpeg", 300, 1.0)
    reg.update_eye_detection(a, EyeDetectionResult(True, 0.8, "t"))
    reg.update_eye_detection(b, EyeDetectionResult(False, 0.6, "t"))
    return reg


class TestRecords:
    """Tests for adding, updating and removing records."""

    def test_add_and_get(self) -> None:
        """Added records are retrievable by id and path."""
        reg = ImageRegistry()
        image_id = reg.add_image("a.png", "/a.png", "image/png", 10, 2.0)
        image = reg.get_image(image_id)
        assert image is not None
        assert image.id == image_id
        assert reg.get_image_by_path("/a.png") == image

    def test_update_merges_fields(self, registry: ImageRegistry) -> None:
        """Only the given fields change."""
        image = registry.get_image_by_path("/a.png")
        assert image is not None
        assert registry.update_image(image.id, size=999)
        updated = registry.get_image(image.id)
        assert updated is not None
        assert updated.size == 999
        assert updated.eye_detection == image.eye_detection

    def test_update_unknown_id(self, registry: ImageRegistry) -> None:
        """Updating an unknown id is a no-op."""
        assert not registry.update_image("missing", size=1)
        assert registry.total_images == 3

    def test_update_cannot_change_id(self, registry: ImageRegistry) -> None:
        """The registry id is immutable."""
        image = registry.all_images[0]
        with pytest.raises(ValueError, match="cannot be changed"):
            registry.update_image(image.id, id="other")

    def test_update_eye_detection_unknown_id(self) -> None:
        """No placeholder record is created for unknown ids."""
        reg = ImageRegistry()
        assert not reg.update_eye_detection("ghost", EyeDetectionResult(True, 0.5, "t"))
        assert reg.total_images == 0

    def test_remove_drops_selection(self, registry: ImageRegistry) -> None:
        """Removing a record also deselects it."""
        image = registry.all_images[0]
        registry.toggle_image_selection(image.id)
        assert registry.remove_image(image.id)
        assert image.id not in registry.selected_image_ids
        assert not registry.remove_image(image.id)

    def test_get_images_by_directory(self, registry: ImageRegistry) -> None:
        """Directory lookup is a string prefix match."""
        paths = {image.path for image in registry.get_images_by_directory("/trip/")}
        assert paths == {"/trip/b.png", "/trip/c.jpg"}


class TestDerivedViews:
    """Tests for derived views."""

    def test_views(self, registry: ImageRegistry) -> None:
        """Views partition records by detection state."""
        assert [i.path for i in registry.open_eye_images] == ["/a.png"]
        assert [i.path for i in registry.closed_eye_images] == ["/trip/b.png"]
        assert len(registry.detected_images) == 2
        assert [i.path for i in registry.undetected_images] == ["/trip/c.jpg"]
        assert registry.total_size == 600

    def test_views_follow_updates(self, registry: ImageRegistry) -> None:
        """Views are recomputed from the current records."""
        image = registry.get_image_by_path("/trip/c.jpg")
        assert image is not None
        registry.update_eye_detection(image.id, EyeDetectionResult(True, 0.7, "t"))
        assert len(registry.open_eye_images) == 2
        assert registry.undetected_images == []


class TestSelection:
    """Tests for image selection."""

    def test_toggle(self, registry: ImageRegistry) -> None:
        """Toggling twice deselects."""
        image_id = registry.all_images[0].id
        assert registry.toggle_image_selection(image_id)
        assert registry.selected_images == [registry.get_image(image_id)]
        assert not registry.toggle_image_selection(image_id)
        assert registry.selected_images == []

    def test_select_images_replaces(self, registry: ImageRegistry) -> None:
        """select_images replaces the previous selection."""
        ids = [image.id for image in registry.all_images]
        registry.toggle_image_selection(ids[0])
        registry.select_images(ids[1:])
        assert set(registry.selected_image_ids) == set(ids[1:])

    def test_dangling_selection_hidden(self) -> None:
        """Selected ids without a record are not returned as images."""
        reg = ImageRegistry()
        reg.toggle_image_selection("ghost")
        assert reg.selected_image_ids == ["ghost"]
        assert reg.selected_images == []

    def test_clear_and_dispose(self, registry: ImageRegistry) -> None:
        """clear drops records and selection."""
        registry.select_images(image.id for image in registry.all_images)
        registry.dispose()
        assert registry.total_images == 0
        assert registry.selected_image_ids == []
