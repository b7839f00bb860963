"""Unit tests for the scan command."""

import json
import os
import sys
from collections.abc import Callable
from pathlib import Path

import pytest
from blinkctl.cli.main import app
from blinkctl.utils import formatting
from typer.testing import CliRunner

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config directory at an empty temporary location."""
    config_home = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))
    monkeypatch.setattr(formatting.console, "width", 200)
    monkeypatch.setattr(formatting.err_console, "width", 200)
    return config_home


class TestScanCommand:
    """Tests for blinkctl scan."""

    def test_scan_help(self) -> None:
        """Scan command shows help."""
        result = runner.invoke(app, ["scan", "--help"])
        assert result.exit_code == 0
        assert "Scan a directory and display its images" in result.stdout

    def test_scan_tree(self, photo_dir: Path) -> None:
        """Tree output lists directories and images."""
        result = runner.invoke(app, ["scan", str(photo_dir)])

        assert result.exit_code == 0
        assert "holiday/" in result.stdout
        assert "sunset.png" in result.stdout
        assert "notes.txt" not in result.stdout
        assert "3 images" in result.stdout

    def test_scan_table(self, photo_dir: Path) -> None:
        """Table output lists image paths."""
        result = runner.invoke(app, ["scan", str(photo_dir), "--format", "table"])

        assert result.exit_code == 0
        assert "/holiday/beach.JPG" in result.stdout
        assert "image/jpeg" in result.stdout

    def test_scan_json(self, photo_dir: Path) -> None:
        """JSON output describes the tree."""
        result = runner.invoke(app, ["scan", str(photo_dir), "-f", "json"])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["root"] == str(photo_dir.resolve())
        assert data["directories"] == ["/empty", "/holiday", "/holiday/raw"]
        assert [i["path"] for i in data["images"]] == [
            "/a.png",
            "/holiday/beach.JPG",
            "/holiday/sunset.png",
        ]
        assert data["stats"]["total_images"] == 3
        assert data["changes"]["added"] == 6

    def test_scan_shallow_no_images(self, photo_dir: Path) -> None:
        """--shallow and --no-images narrow the scan."""
        result = runner.invoke(
            app, ["scan", str(photo_dir), "--shallow", "--no-images", "--format", "json"]
        )

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["directories"] == ["/empty", "/holiday"]
        assert data["images"] == []

    def test_scan_export(self, photo_dir: Path, tmp_path: Path) -> None:
        """--export writes the JSON to a file."""
        export = tmp_path / "tree.json"
        result = runner.invoke(app, ["scan", str(photo_dir), "--export", str(export)])

        assert result.exit_code == 0
        data = json.loads(export.read_text())
        assert data["stats"]["total_images"] == 3

    def test_scan_missing_directory(self, tmp_path: Path) -> None:
        """A missing directory exits with an error."""
        result = runner.invoke(app, ["scan", str(tmp_path / "missing")])

        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_invalid_config(self, photo_dir: Path, isolated_config: Path) -> None:
        """An invalid config file aborts the command."""
        config_dir = isolated_config / "blinkctl"
        config_dir.mkdir(parents=True)
        (config_dir / "config.toml").write_text("[scan]\nunknown = 1\n")

        result = runner.invoke(app, ["scan", str(photo_dir)])

        assert result.exit_code == 1
        assert "Invalid config content" in result.output

    @pytest.mark.skipif(
        sys.platform in ("darwin", "win32"), reason="file system requires UTF-8 names"
    )
    @pytest.mark.parametrize("output_format", ["tree", "table"])
    def test_undecodable_file_name(
        self, tmp_path: Path, png_bytes: Callable[..., bytes], output_format: str
    ) -> None:
        """Names that are not valid UTF-8 are shown with replacement characters."""
        photos = tmp_path / "p"
        photos.mkdir()
        (photos / os.fsdecode(b"\xff\xfe.png")).write_bytes(png_bytes(8, 8))

        result = runner.invoke(app, ["scan", str(photos), "--format", output_format])

        assert result.exit_code == 0, result.output
        assert "\ufffd\ufffd.png" in result.stdout
        assert "1 images" in result.stdout


def test_version() -> None:
    """--version prints the version."""
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "blinkctl version" in result.stdout
