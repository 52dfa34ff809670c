"""
Ingest Module
=============

Decoder hand-off and frame storage.

    - FrameDescriptorStore: validated, immutable frame sequence
    - load_asset: decoder message -> store
    - decode_patch: base64 payload -> RGBA array

Example:
    from patchreel.ingest import load_asset
    
    store = load_asset(json_text)
    print(len(store), store.canvas_width, store.canvas_height)
"""

from patchreel.ingest.loader import decode_patch, load_asset
from patchreel.ingest.store import FrameDescriptorStore


__all__ = [
    "FrameDescriptorStore",
    "decode_patch",
    "load_asset",
]
