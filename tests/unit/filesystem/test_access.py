"""Unit tests for the local filesystem implementation."""

from pathlib import Path

from blinkctl.filesystem.access import ChangeEvent, LocalFilesystem, _ForwardingEventHandler
from watchdog.events import DirModifiedEvent, FileClosedEvent, FileCreatedEvent


class TestLocalFilesystem:
    """Tests for LocalFilesystem."""

    def test_stat_and_read_dir(self, tmp_path: Path) -> None:
        """stat reports kind and size; read_dir is sorted."""
        (tmp_path / "b.png").write_bytes(b"12345")
        (tmp_path / "a").mkdir()
        fs = LocalFilesystem()

        assert fs.read_dir(tmp_path) == ["a", "b.png"]
        stat = fs.stat(tmp_path / "b.png")
        assert stat.is_file and not stat.is_directory
        assert stat.size == 5
        assert fs.stat(tmp_path / "a").is_directory

    def test_read_with_limit(self, tmp_path: Path) -> None:
        """read_file_bytes honours the limit."""
        path = tmp_path / "a.bin"
        path.write_bytes(b"0123456789")
        fs = LocalFilesystem()
        assert fs.read_file_bytes(path, limit=4) == b"0123"
        assert fs.read_file_bytes(path) == b"0123456789"

    def test_write_replaces(self, tmp_path: Path) -> None:
        """write_file_bytes replaces content and leaves no temp file."""
        path = tmp_path / "a.png"
        path.write_bytes(b"old")
        LocalFilesystem().write_file_bytes(path, b"new")
        assert path.read_bytes() == b"new"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["a.png"]


class TestForwardingEventHandler:
    """Tests for watchdog event translation."""

    def test_relative_filename(self, tmp_path: Path) -> None:
        """Changes are reported relative to the watched root."""
        events: list[ChangeEvent] = []
        handler = _ForwardingEventHandler(tmp_path, events.append)
        handler.on_any_event(FileCreatedEvent(str(tmp_path / "sub" / "a.png")))
        assert events == [ChangeEvent("created", "sub/a.png")]

    def test_root_change_has_no_filename(self, tmp_path: Path) -> None:
        """A change on the root itself carries no filename."""
        events: list[ChangeEvent] = []
        handler = _ForwardingEventHandler(tmp_path, events.append)
        handler.on_any_event(DirModifiedEvent(str(tmp_path)))
        assert events == [ChangeEvent("modified", None)]

    def test_close_events_dropped(self, tmp_path: Path) -> None:
        """Close notifications are not changes."""
        events: list[ChangeEvent] = []
        handler = _ForwardingEventHandler(tmp_path, events.append)
        handler.on_any_event(FileClosedEvent(str(tmp_path / "a.png")))
        assert events == []
