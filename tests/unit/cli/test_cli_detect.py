"""Unit tests for the detect and watch commands."""

from pathlib import Path
from unittest.mock import patch

import pytest
from blinkctl.cli.main import app
from blinkctl.utils import formatting
from typer.testing import CliRunner

from conftest import FakeDetector

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point the config directory at an empty temporary location."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setattr(formatting.console, "width", 200)
    monkeypatch.setattr(formatting.err_console, "width", 200)


class TestDetectCommand:
    """Tests for blinkctl detect."""

    def test_requires_detector(self, photo_dir: Path) -> None:
        """Without a configured command the command fails."""
        result = runner.invoke(app, ["detect", str(photo_dir)])

        assert result.exit_code == 1
        assert "No detector command configured" in result.output

    def test_detect_all(self, photo_dir: Path, fake_detector: FakeDetector) -> None:
        """All images are classified and summarized."""
        with patch("blinkctl.cli.commands.detect.build_detector", return_value=fake_detector):
            result = runner.invoke(app, ["detect", str(photo_dir)])

        assert result.exit_code == 0
        assert len(fake_detector.calls) == 3
        assert "2 open" in result.stdout
        assert "1 closed" in result.stdout

    def test_detect_filter(self, photo_dir: Path, fake_detector: FakeDetector) -> None:
        """--filter limits the listed images."""
        with patch("blinkctl.cli.commands.detect.build_detector", return_value=fake_detector):
            result = runner.invoke(app, ["detect", str(photo_dir), "--filter", "closed-eyes"])

        assert result.exit_code == 0
        assert "beach.JPG" in result.stdout
        assert "sunset.png" not in result.stdout

    def test_detect_failures_reported(self, photo_dir: Path, fake_detector: FakeDetector) -> None:
        """Per-image failures are printed as warnings."""
        (photo_dir / "broken.png").write_bytes(b"fail")
        with patch("blinkctl.cli.commands.detect.build_detector", return_value=fake_detector):
            result = runner.invoke(app, ["detect", str(photo_dir)])

        assert result.exit_code == 0
        assert "model exploded" in result.output


def test_watch_help() -> None:
    """Watch command shows help."""
    result = runner.invoke(app, ["watch", "--help"])
    assert result.exit_code == 0
    assert "--no-recursive" in result.stdout
