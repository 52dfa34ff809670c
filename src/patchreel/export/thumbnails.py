"""
Timeline Thumbnails
===================

Low-resolution composited frames for a timeline strip.

Frames are composited at full size (disposal only makes sense at full
resolution) and then scaled down with area interpolation.
"""

import logging
import math
from typing import List

import cv2
import numpy as np

from patchreel.compositing.compositor import composite_range
from patchreel.ingest.store import FrameDescriptorStore


logger = logging.getLogger(__name__)


def thumbnail_size(canvas_width: int, canvas_height: int, height: int) -> tuple:
    """(width, height) of a thumbnail keeping the canvas aspect ratio."""
    width = math.floor(canvas_width * height / canvas_height)
    return max(1, width), height


def generate_thumbnails(store: FrameDescriptorStore, height: int = 60) -> List[np.ndarray]:
    """
    Composite every frame and scale it to the given height.
    
    Args:
        store: Source frames
        height: Thumbnail height in pixels (>= 1)
        
    Returns:
        Frozen RGBA thumbnails, one per frame
    """
    if height < 1:
        raise ValueError("height must be >= 1")
    
    size = thumbnail_size(store.canvas_width, store.canvas_height, height)
    
    thumbnails: List[np.ndarray] = []
    for canvas in composite_range(store, store.canvas_width, store.canvas_height):
        thumb = cv2.resize(canvas, size, interpolation=cv2.INTER_AREA)
        thumb.flags.writeable = False
        thumbnails.append(thumb)
    
    logger.info(
        f"Generated {len(thumbnails)} thumbnails at {size[0]}x{size[1]}"
    )
    return thumbnails
