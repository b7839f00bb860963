"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

import struct
from collections.abc import Callable
from pathlib import Path

import pytest
from blinkctl.detection.engine import DetectionError, DetectionOutcome
from blinkctl.filesystem.probe import JPEG_SOI, PNG_SIGNATURE


def make_png(width: int, height: int, body: bytes = b"") -> bytes:
    """Build the leading bytes of a PNG file with the given IHDR size."""
    ihdr = struct.pack(">I", 13) + b"IHDR" + struct.pack(">II", width, height)
    return PNG_SIGNATURE + ihdr + b"\x08\x06\x00\x00\x00" + body


def make_jpeg(body: bytes = b"") -> bytes:
    """Build the leading bytes of a JPEG file."""
    return JPEG_SOI + b"\xff\xe0\x00\x10JFIF\x00" + body


class FakeDetector:
    """Eye detector returning canned outcomes keyed by image content.

    Content containing ``b"open"`` is classified open, ``b"closed"``
    closed, ``b"none"`` returns None and ``b"fail"`` raises.
    """

    def __init__(self, confidence: float = 0.9) -> None:
        self.confidence = confidence
        self.calls: list[bytes] = []

    async def detect(self, image_bytes: bytes) -> DetectionOutcome | None:
        self.calls.append(image_bytes)
        if b"fail" in image_bytes:
            raise DetectionError("model exploded")
        if b"none" in image_bytes:
            return None
        return DetectionOutcome(is_open=b"closed" not in image_bytes, confidence=self.confidence)


@pytest.fixture
def png_bytes() -> Callable[..., bytes]:
    """Factory for PNG header bytes."""
    return make_png


@pytest.fixture
def fake_detector() -> FakeDetector:
    """Detector with deterministic results."""
    return FakeDetector()


@pytest.fixture
def photo_dir(tmp_path: Path) -> Path:
    """Sample photo directory.

    Layout::

        photos/
            a.png          (640x480, "open")
            notes.txt
            holiday/
                beach.JPG  ("closed")
                sunset.png (32x16, "open")
                raw/
            empty/
    """
    root = tmp_path / "photos"
    (root / "holiday" / "raw").mkdir(parents=True)
    (root / "empty").mkdir()
    (root / "a.png").write_bytes(make_png(640, 480, b"open"))
    (root / "notes.txt").write_text("not an image")
    (root / "holiday" / "beach.JPG").write_bytes(make_jpeg(b"closed"))
    (root / "holiday" / "sunset.png").write_bytes(make_png(32, 16, b"open"))
    return root


@pytest.fixture
def jpeg_bytes() -> Callable[..., bytes]:
    """Factory for JPEG header bytes."""
    return make_jpeg
