"""Image classification and best-effort dimension probing.

Images are recognized purely by file extension. Dimensions are read from
the smallest possible header: PNG width/height come from the IHDR chunk,
JPEG gets a fixed placeholder instead of a decoded frame header.
"""

import struct
from pathlib import PurePath

from blinkctl.models.node import Dimensions

# Extension (lowercase, with dot) to MIME type for recognized images
IMAGE_MIME_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
    ".webp": "image/webp",
    ".svg": "image/svg+xml",
    ".tiff": "image/tiff",
    ".tif": "image/tiff",
}

IMAGE_EXTENSIONS: frozenset[str] = frozenset(IMAGE_MIME_TYPES)

DEFAULT_MIME_TYPE = "application/octet-stream"

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SOI = b"\xff\xd8"

# Bytes needed to reach the IHDR width/height fields of a PNG
HEADER_SIZE = 24

# Known approximation: JPEG frame headers are not parsed
JPEG_PLACEHOLDER_DIMENSIONS = Dimensions(width=800, height=600)


def is_image_file(filename: str) -> bool:
    """Check if a file name has a recognized image extension (case-insensitive)."""
    return PurePath(filename).suffix.lower() in IMAGE_EXTENSIONS


def get_mime_type(filename: str) -> str:
    """Get the MIME type for a file name from its extension."""
    return IMAGE_MIME_TYPES.get(PurePath(filename).suffix.lower(), DEFAULT_MIME_TYPE)


def probe_dimensions(header: bytes) -> Dimensions | None:
    """Read image dimensions from the leading bytes of a file.

    Args:
        header: At least the first HEADER_SIZE bytes of the file for PNG.

    Returns:
        Dimensions for PNG (from IHDR) and JPEG (placeholder), None otherwise.
    """
    if len(header) >= HEADER_SIZE and header.startswith(PNG_SIGNATURE):
        width, height = struct.unpack(">II", header[16:24])
        return Dimensions(width=width, height=height)

    if header.startswith(JPEG_SOI):
        return JPEG_PLACEHOLDER_DIMENSIONS

    return None
