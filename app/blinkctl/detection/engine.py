"""Eye-detection engine interface.

The engine itself is external. blinkctl only needs an object with an
async ``detect`` method; how inference runs is up to the implementation.
"""

from dataclasses import dataclass
from typing import Protocol

from blinkctl.core.errors import BlinkctlError


class DetectionError(BlinkctlError):
    """Raised when eye detection fails for an image."""


@dataclass(frozen=True, slots=True)
class DetectionOutcome:
    """Raw classification returned by a detector.

    Attributes:
        is_open: Whether the eyes are open.
        confidence: Confidence score (0.0 to 1.0).
    """

    is_open: bool
    confidence: float

    def __post_init__(self) -> None:
        """Validate outcome data after initialization."""
        if not (0.0 <= self.confidence <= 1.0):
            msg = f"Confidence must be between 0.0 and 1.0, got {self.confidence}"
            raise ValueError(msg)


class EyeDetector(Protocol):
    """Asynchronous eye detector.

    ``detect`` returns a DetectionOutcome on success. Failure is signalled
    by raising (DetectionError by convention) or by returning None.
    """

    async def detect(self, image_bytes: bytes) -> DetectionOutcome | None:
        """Classify a single image."""
        ...
