"""
Export Module
=============

Encoder-facing outputs.

    - Exporter / ExportedFrame: trimmed, optionally cropped frame sequence
    - generate_thumbnails: scaled-down timeline strip
"""

from patchreel.export.exporter import ExportedFrame, Exporter
from patchreel.export.thumbnails import generate_thumbnails, thumbnail_size


__all__ = [
    "ExportedFrame",
    "Exporter",
    "generate_thumbnails",
    "thumbnail_size",
]
