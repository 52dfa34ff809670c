"""
Canvas Buffers
==============

Allocation and freezing of full-frame RGBA buffers.

A canvas is a numpy uint8 array of shape (height, width, 4), straight
alpha, initialised to transparent black. Buffers handed to consumers
are frozen copies: read-only and never aliased with a live canvas.
"""

from typing import Optional

import numpy as np

from patchreel.errors import ResourceExhaustion


def new_canvas(width: int, height: int) -> np.ndarray:
    """
    Allocate a transparent canvas.
    
    Raises:
        ResourceExhaustion: If the buffer cannot be allocated
    """
    try:
        return np.zeros((height, width, 4), dtype=np.uint8)
    except MemoryError as e:
        raise ResourceExhaustion(
            f"Cannot allocate {width}x{height} RGBA canvas"
        ) from e


def freeze(buffer: np.ndarray) -> np.ndarray:
    """
    Return a read-only copy of a buffer.
    
    Raises:
        ResourceExhaustion: If the copy cannot be allocated
    """
    try:
        frozen = buffer.copy()
    except MemoryError as e:
        raise ResourceExhaustion(
            f"Cannot copy canvas of shape {buffer.shape}"
        ) from e
    frozen.flags.writeable = False
    return frozen


def thaw(buffer: Optional[np.ndarray]) -> Optional[np.ndarray]:
    """Writable copy of a (possibly frozen) buffer, or None."""
    if buffer is None:
        return None
    try:
        return buffer.copy()
    except MemoryError as e:
        raise ResourceExhaustion(
            f"Cannot copy canvas of shape {buffer.shape}"
        ) from e
