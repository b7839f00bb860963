"""Filesystem access collaborator.

The scanner, watcher and coordinator never touch the OS directly; they
go through a FilesystemAccess implementation. LocalFilesystem is the
pathlib + watchdog implementation used in production; tests may pass
their own.
"""

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

# Watchdog event types that describe an actual change. Open/close
# notifications are dropped: scanning reads files and must not retrigger.
RELEVANT_EVENT_TYPES: frozenset[str] = frozenset({"created", "deleted", "modified", "moved"})


@dataclass(frozen=True, slots=True)
class FileStat:
    """Subset of stat information used by the scanner.

    Attributes:
        is_directory: Entry is a directory (symlinks followed).
        is_file: Entry is a regular file (symlinks followed).
        is_symlink: Entry itself is a symbolic link.
        size: Size in bytes.
        mtime: Modification time as a POSIX timestamp.
    """

    is_directory: bool
    is_file: bool
    is_symlink: bool
    size: int
    mtime: float


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """Filesystem change notification.

    Attributes:
        event_type: Kind of change ("created", "deleted", "modified", "moved").
        filename: Changed entry relative to the watched path, None if unknown.
    """

    event_type: str
    filename: str | None = None


class WatchHandle(Protocol):
    """Native watch that can be released."""

    def stop(self) -> None:
        """Release the watch."""
        ...


class FilesystemAccess(Protocol):
    """Filesystem operations required by blinkctl."""

    def exists(self, path: Path) -> bool:
        """Check if a path exists."""
        ...

    def stat(self, path: Path) -> FileStat:
        """Stat a path, following symlinks. Raises OSError on failure."""
        ...

    def read_dir(self, path: Path) -> list[str]:
        """List entry names of a directory. Raises OSError on failure."""
        ...

    def read_file_bytes(self, path: Path, limit: int | None = None) -> bytes:
        """Read a file, or its first ``limit`` bytes. Raises OSError on failure."""
        ...

    def write_file_bytes(self, path: Path, data: bytes) -> None:
        """Write a file, replacing existing content. Raises OSError on failure."""
        ...

    def watch(
        self,
        path: Path,
        recursive: bool,
        on_event: Callable[[ChangeEvent], None],
    ) -> WatchHandle:
        """Start watching a path. ``on_event`` may be called from another thread."""
        ...


class _ForwardingEventHandler(FileSystemEventHandler):
    """Translates watchdog events into ChangeEvents."""

    def __init__(self, root: Path, on_event: Callable[[ChangeEvent], None]) -> None:
        super().__init__()
        self._root = root
        self._on_event = on_event

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type not in RELEVANT_EVENT_TYPES:
            return
        self._on_event(ChangeEvent(event.event_type, self._relative(event.src_path)))

    def _relative(self, src_path: str | bytes) -> str | None:
        path = os.fsdecode(src_path)
        if not path:
            return None
        try:
            relative = Path(path).relative_to(self._root)
        except ValueError:
            return None
        return relative.as_posix() if relative.parts else None


class ObserverWatchHandle:
    """Watch backed by a dedicated watchdog observer thread."""

    def __init__(self, observer: Observer) -> None:  # type: ignore[valid-type]
        self._observer = observer

    def stop(self) -> None:
        """Stop the observer thread and wait for it to exit."""
        if self._observer.is_alive():
            self._observer.stop()
            self._observer.join()

    @property
    def is_alive(self) -> bool:
        """Check if the observer thread is running."""
        return bool(self._observer.is_alive())


class LocalFilesystem:
    """FilesystemAccess implementation over the local filesystem."""

    def exists(self, path: Path) -> bool:
        """Check if a path exists."""
        return path.exists()

    def stat(self, path: Path) -> FileStat:
        """Stat a path, following symlinks."""
        st = path.stat()
        return FileStat(
            is_directory=path.is_dir(),
            is_file=path.is_file(),
            is_symlink=path.is_symlink(),
            size=st.st_size,
            mtime=st.st_mtime,
        )

    def read_dir(self, path: Path) -> list[str]:
        """List entry names of a directory, sorted."""
        return sorted(entry.name for entry in path.iterdir())

    def read_file_bytes(self, path: Path, limit: int | None = None) -> bytes:
        """Read a file, or its first ``limit`` bytes."""
        with path.open("rb") as f:
            return f.read() if limit is None else f.read(limit)

    def write_file_bytes(self, path: Path, data: bytes) -> None:
        """Write a file atomically via a temporary sibling."""
        tmp_path = path.with_name(f".{path.name}.tmp")
        try:
            tmp_path.write_bytes(data)
            tmp_path.replace(path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def watch(
        self,
        path: Path,
        recursive: bool,
        on_event: Callable[[ChangeEvent], None],
    ) -> ObserverWatchHandle:
        """Start a watchdog observer for ``path``."""
        root = path.resolve()
        observer = Observer()
        observer.schedule(_ForwardingEventHandler(root, on_event), str(root), recursive=recursive)
        observer.start()
        logger.info("Started watching directory: %s", root)
        return ObserverWatchHandle(observer)
