"""Directory tree module.

This module provides the directory tree store and the reconciliation
of scan results into it.
"""

from blinkctl.tree.reconcile import ReconcileSummary, reconcile_scan, to_tree_path
from blinkctl.tree.store import DirectoryTreeStore, TreeDisposedError

__all__ = [
    "DirectoryTreeStore",
    "ReconcileSummary",
    "TreeDisposedError",
    "reconcile_scan",
    "to_tree_path",
]
