"""
patchreel
=========

Frame reconstruction and random access for animated patch sequences.

Animated raster formats such as GIF store each frame as a partial patch
plus a disposal directive. This package rebuilds full frames from that
history and makes any frame cheap to reach for scrubbing, playback,
trimming, cropping and re-export.

Components:
    - ingest: Decoder hand-off and the immutable frame descriptor store
    - compositing: Disposal-aware alpha-over reconstruction
    - cache: Snapshot-indexed seek cache
    - playback: Single-flight seek gate and timing sequencer
    - export: Trim/crop export pass and timeline thumbnails
    - session: Wiring for one loaded asset

Example:
    from patchreel.ingest import load_asset
    from patchreel.cache import SnapshotCache
    
    store = load_asset(asset_json)
    cache = SnapshotCache(store, checkpoint_interval=10)
    frame = cache.ensure_frame(42)
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
