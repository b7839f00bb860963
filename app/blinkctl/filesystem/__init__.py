"""Filesystem scanning and watching module.

This module provides the filesystem access collaborator, image header
probing, the directory scanner and the change watcher.
"""

from blinkctl.filesystem.access import (
    ChangeEvent,
    FilesystemAccess,
    FileStat,
    LocalFilesystem,
    WatchHandle,
)
from blinkctl.filesystem.probe import (
    IMAGE_EXTENSIONS,
    IMAGE_MIME_TYPES,
    get_mime_type,
    is_image_file,
    probe_dimensions,
)
from blinkctl.filesystem.scanner import FilesystemScanner
from blinkctl.filesystem.watcher import ChangeWatcher, WatchTargetNotFoundError

__all__ = [
    "IMAGE_EXTENSIONS",
    "IMAGE_MIME_TYPES",
    "ChangeEvent",
    "ChangeWatcher",
    "FileStat",
    "FilesystemAccess",
    "FilesystemScanner",
    "LocalFilesystem",
    "WatchHandle",
    "WatchTargetNotFoundError",
    "get_mime_type",
    "is_image_file",
    "probe_dimensions",
]
