"""Data models for blinkctl.

This module exports the core data structures used throughout the application.
"""

from blinkctl.models.image import ImageInfo
from blinkctl.models.node import (
    Dimensions,
    DirectoryNode,
    DirectoryStats,
    EyeDetectionResult,
    ImageMetadata,
    NodeKind,
)
from blinkctl.models.scan_result import ScanRequest, ScanResult, ScannedDirectory, ScannedImage

__all__ = [
    "Dimensions",
    "DirectoryNode",
    "DirectoryStats",
    "EyeDetectionResult",
    "ImageInfo",
    "ImageMetadata",
    "NodeKind",
    "ScanRequest",
    "ScanResult",
    "ScannedDirectory",
    "ScannedImage",
]
