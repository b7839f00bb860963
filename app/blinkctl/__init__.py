"""blinkctl - directory and image tree with eye-detection metadata.

Mirrors a filesystem subtree into an in-memory tree of directory and
image nodes and keeps it synchronized through scans and live watching.
"""

__version__ = "0.1.0"
