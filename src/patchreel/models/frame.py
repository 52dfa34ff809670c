"""
Frame Models
============

Immutable per-frame records produced once by the decoder.

A FrameDescriptor carries one patch: the partial pixels of a frame,
the rectangle they are placed at on the canvas, how long the frame is
shown, and how the canvas is disposed of before the next frame draws.

Pixel Format:
    Patches and canvases are numpy uint8 arrays of shape (H, W, 4) in
    STRAIGHT (non-premultiplied) RGBA. Background is transparent black.

Design Rules:
    - Descriptors are frozen; the patch array is read-only
    - Geometry against the canvas is checked by the store, not here
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np

from patchreel.errors import DecodeFailure, GeometryViolation


class Disposal(str, Enum):
    """
    What happens to the canvas after a frame, before the next one draws.
    
    Attributes:
        NONE: Leave the patch pixels in place
        RESTORE_BACKGROUND: Clear the frame's rectangle to transparent
        RESTORE_PREVIOUS: Put back the whole canvas as it was before the frame
    """
    
    NONE = "NONE"
    RESTORE_BACKGROUND = "RESTORE_BACKGROUND"
    RESTORE_PREVIOUS = "RESTORE_PREVIOUS"
    
    @classmethod
    def from_gif_code(cls, code: int) -> "Disposal":
        """
        Map a GIF graphic-control disposal code.
        
        0 (unspecified) and 1 (do not dispose) keep the pixels. Codes 4-7
        are reserved by the format and are treated the same way.
        """
        if code == 2:
            return cls.RESTORE_BACKGROUND
        if code == 3:
            return cls.RESTORE_PREVIOUS
        return cls.NONE


@dataclass(frozen=True, slots=True)
class PatchRect:
    """
    Placement of a patch on the canvas, in pixels.
    
    Attributes:
        left: Column of the patch's top-left pixel
        top: Row of the patch's top-left pixel
        width: Patch width (> 0)
        height: Patch height (> 0)
    """
    
    left: int
    top: int
    width: int
    height: int
    
    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.left < 0 or self.top < 0:
            raise GeometryViolation(
                f"Patch origin must be non-negative, got ({self.left}, {self.top})"
            )
        if self.width <= 0 or self.height <= 0:
            raise GeometryViolation(
                f"Patch size must be positive, got {self.width}x{self.height}"
            )
    
    @property
    def right(self) -> int:
        return self.left + self.width
    
    @property
    def bottom(self) -> int:
        return self.top + self.height
    
    def fits(self, canvas_width: int, canvas_height: int) -> bool:
        """Whether the rectangle lies entirely inside the canvas."""
        return self.right <= canvas_width and self.bottom <= canvas_height
    
    def slices(self) -> tuple:
        """Row and column slices selecting this rectangle from a canvas."""
        return slice(self.top, self.bottom), slice(self.left, self.right)


@dataclass(frozen=True, slots=True, eq=False)
class FrameDescriptor:
    """
    One decoded frame of an animation.
    
    Attributes:
        patch: Straight-alpha RGBA pixels, shape (rect.height, rect.width, 4)
        rect: Where the patch goes on the canvas
        delay_ms: Display duration in milliseconds (0 allowed)
        disposal: Directive applied before the next frame draws
    """
    
    patch: np.ndarray
    rect: PatchRect
    delay_ms: int
    disposal: Disposal = Disposal.NONE
    
    def __post_init__(self) -> None:
        """Validate the patch and take a read-only copy of it."""
        if self.delay_ms < 0:
            raise DecodeFailure(f"delay_ms must be non-negative, got {self.delay_ms}")
        
        try:
            pixels = np.array(self.patch, dtype=np.uint8)
        except (TypeError, ValueError) as e:
            raise DecodeFailure(f"Patch is not a pixel array: {e}") from e
        
        expected = (self.rect.height, self.rect.width, 4)
        if pixels.shape != expected:
            raise DecodeFailure(
                f"Patch shape {pixels.shape} does not match rect {expected}"
            )
        
        pixels.flags.writeable = False
        object.__setattr__(self, "patch", pixels)
        object.__setattr__(self, "disposal", Disposal(self.disposal))
    
    def __repr__(self) -> str:
        """Compact repr that doesn't dump the pixels."""
        r = self.rect
        return (
            f"FrameDescriptor(rect=({r.left}, {r.top}, {r.width}x{r.height}), "
            f"delay_ms={self.delay_ms}, disposal={self.disposal.value})"
        )
