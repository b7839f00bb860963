"""Image registry module.

Flat keyed store of image records with selection state, independent
of the directory tree shape.
"""

from blinkctl.images.registry import ImageRegistry

__all__ = ["ImageRegistry"]
