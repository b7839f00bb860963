"""Base exception for blinkctl.

Module-specific errors (configuration, watching, detection, disposed
stores) derive from BlinkctlError so callers can catch them together.
"""


class BlinkctlError(Exception):
    """Base exception for blinkctl errors."""
