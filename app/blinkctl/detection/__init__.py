"""Eye-detection module.

Defines the detector interface consumed by the coordinator and a
detector that shells out to an external command.
"""

from blinkctl.detection.command import CommandEyeDetector, parse_detector_output
from blinkctl.detection.engine import DetectionError, DetectionOutcome, EyeDetector

__all__ = [
    "CommandEyeDetector",
    "DetectionError",
    "DetectionOutcome",
    "EyeDetector",
    "parse_detector_output",
]
