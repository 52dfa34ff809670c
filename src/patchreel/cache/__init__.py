"""
Cache Module
============

Snapshot-indexed seek cache over a frame descriptor store.
"""

from patchreel.cache.snapshot_cache import Snapshot, SnapshotCache


__all__ = [
    "Snapshot",
    "SnapshotCache",
]
