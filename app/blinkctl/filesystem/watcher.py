"""Change watcher for scanned directories.

Holds one native watch per watched path and forwards change events to
a callback. Watches are released with ``stop_watching`` or ``stop_all``.
"""

import logging
from collections.abc import Callable
from pathlib import Path

from blinkctl.core.errors import BlinkctlError
from blinkctl.filesystem.access import ChangeEvent, FilesystemAccess, LocalFilesystem, WatchHandle

logger = logging.getLogger(__name__)

# Callback receiving the watched path and the change event
ChangeCallback = Callable[[Path, ChangeEvent], None]


class WatchTargetNotFoundError(BlinkctlError):
    """Raised when asked to watch a path that does not exist."""


class ChangeWatcher:
    """Watches directories and forwards change events.

    The callback is invoked from the watch backend's thread; consumers
    that own single-threaded state must marshal the call themselves.
    """

    def __init__(self, on_change: ChangeCallback, fs: FilesystemAccess | None = None) -> None:
        self._fs = fs if fs is not None else LocalFilesystem()
        self._on_change = on_change
        self._handles: dict[Path, WatchHandle] = {}

    @staticmethod
    def _key(path: str | Path) -> Path:
        return Path(path).resolve()

    def watch(self, path: str | Path, recursive: bool = True) -> None:
        """Start watching ``path``. Watching an already watched path does nothing.

        Raises:
            WatchTargetNotFoundError: If the path does not exist.
        """
        key = self._key(path)
        if not self._fs.exists(key):
            msg = f"Directory does not exist: {key}"
            raise WatchTargetNotFoundError(msg)
        if key in self._handles:
            logger.debug("Already watching %s", key)
            return

        def forward(event: ChangeEvent) -> None:
            logger.debug("Change detected in %s: %s %s", key, event.event_type, event.filename)
            self._on_change(key, event)

        self._handles[key] = self._fs.watch(key, recursive, forward)

    def stop_watching(self, path: str | Path) -> bool:
        """Release the watch on ``path``.

        Returns:
            True if the path was being watched.
        """
        handle = self._handles.pop(self._key(path), None)
        if handle is None:
            return False
        handle.stop()
        logger.info("Stopped watching directory: %s", path)
        return True

    def stop_all(self) -> None:
        """Release every watch."""
        for key in list(self._handles):
            self.stop_watching(key)

    def is_watching(self, path: str | Path) -> bool:
        """Check if ``path`` is being watched."""
        return self._key(path) in self._handles

    @property
    def watched_paths(self) -> list[Path]:
        """Currently watched paths."""
        return list(self._handles)
