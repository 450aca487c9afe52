"""
snapshim Engine Layer.

The embedded read-only database and how it gets loaded.

Core Components:
- SnapshotEngine: In-memory database built from snapshot bytes
- Statement: Prepared statement with bind/step/free
- SnapshotLoader: Cache-first fetch of the versioned snapshot resource
- DatabaseLifecycle: Load-once, share-in-flight, retry-on-failure memoization
"""

from .engine import Row, SnapshotEngine, Statement, leading_statement
from .lifecycle import DatabaseLifecycle, LoadState, SnapshotSource
from .loader import SnapshotLoader

__all__ = [
    "DatabaseLifecycle",
    "LoadState",
    "Row",
    "SnapshotEngine",
    "SnapshotLoader",
    "SnapshotSource",
    "Statement",
    "leading_statement",
]
