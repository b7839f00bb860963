"""Unit tests for the command-backed eye detector."""

import asyncio
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest
from blinkctl.detection.command import CommandEyeDetector, parse_detector_output
from blinkctl.detection.engine import DetectionError, DetectionOutcome


def _completed(
    stdout: str = "",
    stderr: str = "",
    returncode: int = 0,
) -> subprocess.CompletedProcess[str]:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestParseDetectorOutput:
    """Tests for parse_detector_output."""

    def test_valid_output(self) -> None:
        """A JSON object with is_open and confidence is parsed."""
        outcome = parse_detector_output('{"is_open": false, "confidence": 0.75}')
        assert outcome == DetectionOutcome(is_open=False, confidence=0.75)

    def test_integer_confidence(self) -> None:
        """Integer confidence is accepted."""
        assert parse_detector_output('{"is_open": true, "confidence": 1}').confidence == 1.0

    @pytest.mark.parametrize(
        ("stdout", "message"),
        [
            ("not json", "not valid JSON"),
            ("[1, 2]", "must be a JSON object"),
            ('{"confidence": 0.5}', "boolean 'is_open'"),
            ('{"is_open": 1, "confidence": 0.5}', "boolean 'is_open'"),
            ('{"is_open": true}', "numeric 'confidence'"),
            ('{"is_open": true, "confidence": true}', "numeric 'confidence'"),
            ('{"is_open": true, "confidence": 1.5}', "between 0.0 and 1.0"),
        ],
    )
    def test_invalid_output(self, stdout: str, message: str) -> None:
        """Malformed output raises DetectionError."""
        with pytest.raises(DetectionError, match=message):
            parse_detector_output(stdout)


class TestCommandEyeDetector:
    """Tests for CommandEyeDetector."""

    def test_empty_command_rejected(self) -> None:
        """A detector needs a command."""
        with pytest.raises(ValueError, match="cannot be empty"):
            CommandEyeDetector([])

    def test_detect_passes_image_file(self) -> None:
        """The image is written to a temp file appended to the command."""
        seen: dict[str, object] = {}

        def fake_run(args: list[str], timeout: float) -> subprocess.CompletedProcess[str]:
            seen["args"] = args
            seen["timeout"] = timeout
            seen["content"] = Path(args[-1]).read_bytes()
            return _completed(stdout='{"is_open": true, "confidence": 0.9}')

        detector = CommandEyeDetector(["eyes", "--json"], timeout_seconds=5.0, suffix=".png")
        with patch("blinkctl.detection.command._run_command", side_effect=fake_run):
            outcome = asyncio.run(detector.detect(b"image-data"))

        assert outcome == DetectionOutcome(is_open=True, confidence=0.9)
        args = seen["args"]
        assert isinstance(args, list)
        assert args[:2] == ["eyes", "--json"]
        assert args[2].endswith(".png")
        assert seen["timeout"] == 5.0
        assert seen["content"] == b"image-data"
        assert not Path(args[2]).exists()

    def test_nonzero_exit(self) -> None:
        """A failing command raises with its stderr."""
        detector = CommandEyeDetector(["eyes"])
        with (
            patch(
                "blinkctl.detection.command._run_command",
                return_value=_completed(stderr="no face found\n", returncode=2),
            ),
            pytest.raises(DetectionError, match="no face found"),
        ):
            detector.detect_sync(b"x")

    def test_timeout(self) -> None:
        """A timeout becomes a DetectionError."""
        detector = CommandEyeDetector(["eyes"], timeout_seconds=1.0)
        with (
            patch(
                "blinkctl.detection.command._run_command",
                side_effect=subprocess.TimeoutExpired(cmd="eyes", timeout=1.0),
            ),
            pytest.raises(DetectionError, match="timed out"),
        ):
            detector.detect_sync(b"x")

    def test_missing_command(self) -> None:
        """A missing executable becomes a DetectionError."""
        detector = CommandEyeDetector(["definitely-not-installed"])
        with (
            patch(
                "blinkctl.detection.command._run_command",
                side_effect=FileNotFoundError("definitely-not-installed"),
            ),
            pytest.raises(DetectionError, match="not found"),
        ):
            detector.detect_sync(b"x")
