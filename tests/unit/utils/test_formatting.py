"""Unit tests for Rich formatting helpers."""

from blinkctl.models.node import EyeDetectionResult
from blinkctl.core.theme import get_theme
from blinkctl.tree.store import DirectoryTreeStore
from blinkctl.utils.formatting import build_tree, display_text, format_detection, format_size
from rich.console import Console


class TestFormatSize:
    """Tests for format_size."""

    def test_units(self) -> None:
        """Sizes are scaled to the largest fitting unit."""
        assert format_size(512) == "512.0 B"
        assert format_size(2048) == "2.0 KB"
        assert format_size(5 * 1024 * 1024) == "5.0 MB"


class TestFormatDetection:
    """Tests for format_detection."""

    def test_states(self) -> None:
        """Undetected, open and closed are labelled."""
        assert "undetected" in format_detection(None)
        assert "open" in format_detection(EyeDetectionResult(True, 0.9, "t"))
        assert "closed" in format_detection(EyeDetectionResult(False, 0.5, "t"))
        assert "50%" in format_detection(EyeDetectionResult(False, 0.5, "t"))


def test_build_tree_renders_nodes() -> None:
    """The Rich tree mirrors the store."""
    store = DirectoryTreeStore()
    trip = store.add_directory("trip", "/trip")
    assert trip is not None
    store.add_image_node("a.png", "/trip/a.png", trip, "image/png", 2048, 1.0)

    console = Console(theme=get_theme(), record=True, width=120)
    console.print(build_tree(store.root, label="photos"))
    text = console.export_text()

    assert "photos" in text
    assert "trip/" in text
    assert "a.png" in text
    assert "2.0 KB" in text


class TestDisplayText:
    """Tests for display_text."""

    def test_undecodable_bytes_are_replaced(self) -> None:
        """Surrogate-escaped bytes become replacement characters."""
        name = b"\xff\xfe.png".decode("utf-8", "surrogateescape")
        assert display_text(name) == "\ufffd\ufffd.png"

    def test_plain_names_unchanged(self) -> None:
        """Valid names pass through."""
        assert display_text("/holiday/beach.JPG") == "/holiday/beach.JPG"

    def test_brackets_are_not_markup(self) -> None:
        """Bracketed names render literally."""
        console = Console(theme=get_theme(), record=True, width=120)
        console.print(f"[image]{display_text('[draft] a.png')}[/]")
        assert "[draft] a.png" in console.export_text()
