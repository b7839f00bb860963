"""Eye detector backed by an external command.

The image is written to a temporary file whose path is appended to the
configured command. The command must print a JSON object such as
``{"is_open": true, "confidence": 0.93}`` on stdout and exit with 0.
"""

import asyncio
import json
import logging
import subprocess
from pathlib import Path
from tempfile import NamedTemporaryFile

from blinkctl.detection.engine import DetectionError, DetectionOutcome

logger = logging.getLogger(__name__)


def _run_command(args: list[str], timeout: float) -> subprocess.CompletedProcess[str]:
    """Run a command capturing text output, without raising on exit status."""
    return subprocess.run(
        args,
        capture_output=True,
        text=True,
        check=False,
        timeout=timeout,
    )


def parse_detector_output(stdout: str) -> DetectionOutcome:
    """Parse detector JSON output.

    Args:
        stdout: Standard output of the detector command.

    Returns:
        DetectionOutcome built from ``is_open`` and ``confidence``.

    Raises:
        DetectionError: If the output is not the expected JSON object.
    """
    try:
        data = json.loads(stdout)
    except json.JSONDecodeError as e:
        raise DetectionError(f"Detector output is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise DetectionError("Detector output must be a JSON object")

    is_open = data.get("is_open")
    confidence = data.get("confidence")
    if not isinstance(is_open, bool):
        raise DetectionError("Detector output is missing boolean 'is_open'")
    if isinstance(confidence, bool) or not isinstance(confidence, int | float):
        raise DetectionError("Detector output is missing numeric 'confidence'")

    try:
        return DetectionOutcome(is_open=is_open, confidence=float(confidence))
    except ValueError as e:
        raise DetectionError(str(e)) from e


class CommandEyeDetector:
    """Runs an external detector command once per image.

    Attributes:
        command: Command and fixed arguments; the image path is appended.
        timeout_seconds: Maximum time per invocation.
        suffix: File suffix for the temporary image file.
    """

    def __init__(self, command: list[str], timeout_seconds: float = 60.0, suffix: str = "") -> None:
        if not command:
            msg = "Detector command cannot be empty"
            raise ValueError(msg)
        self.command = list(command)
        self.timeout_seconds = timeout_seconds
        self.suffix = suffix

    async def detect(self, image_bytes: bytes) -> DetectionOutcome:
        """Classify an image by running the detector command in a worker thread.

        Raises:
            DetectionError: If the command fails, times out, is missing or
                prints invalid output.
        """
        return await asyncio.to_thread(self.detect_sync, image_bytes)

    def detect_sync(self, image_bytes: bytes) -> DetectionOutcome:
        """Blocking implementation of ``detect``."""
        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(mode="wb", delete=False, suffix=self.suffix) as f:
                tmp_path = Path(f.name)
                f.write(image_bytes)

            try:
                result = _run_command([*self.command, str(tmp_path)], self.timeout_seconds)
            except subprocess.TimeoutExpired as e:
                raise DetectionError(
                    f"Detector timed out after {self.timeout_seconds} seconds"
                ) from e
            except FileNotFoundError as e:
                raise DetectionError(f"Detector command not found: {e}") from e
            except OSError as e:
                raise DetectionError(f"Cannot run detector: {e}") from e

            if result.returncode != 0:
                raise DetectionError(
                    result.stderr.strip() or f"Detector exited with code {result.returncode}"
                )
            return parse_detector_output(result.stdout)
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
