"""
Geometry Models
===============

Trim ranges and crop rectangles supplied by the editing layer.

Both are validated on entry to the sequencer and exporter. Nothing in
this package clamps them silently: CropRect.clamped is the explicit
constructor for turning a user-drawn box into a valid crop.

Coordinates:
    All values are in SOURCE CANVAS pixels, origin top-left.
"""

import math
from dataclasses import dataclass

from patchreel.errors import GeometryViolation


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass(frozen=True, slots=True)
class TrimRange:
    """
    Inclusive range of frame indices.
    
    Attributes:
        start: First frame in the range
        end: Last frame in the range (inclusive)
    """
    
    start: int
    end: int
    
    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.start < 0:
            raise GeometryViolation(f"Trim start must be >= 0, got {self.start}")
        if self.end < self.start:
            raise GeometryViolation(
                f"Trim end ({self.end}) must not precede start ({self.start})"
            )
    
    @classmethod
    def full(cls, frame_count: int) -> "TrimRange":
        """Range covering every frame of an asset."""
        if frame_count < 1:
            raise GeometryViolation("Cannot trim an asset with no frames")
        return cls(0, frame_count - 1)
    
    def validate(self, frame_count: int) -> "TrimRange":
        """Check the range against an asset's frame count."""
        if self.end >= frame_count:
            raise GeometryViolation(
                f"Trim end {self.end} out of range for {frame_count} frames"
            )
        return self
    
    def with_start(self, index: int) -> "TrimRange":
        """New range starting at index. The start may not pass the end."""
        if index > self.end:
            raise GeometryViolation(
                f"Cannot start trim at {index}, after end {self.end}"
            )
        return TrimRange(index, self.end)
    
    def with_end(self, index: int) -> "TrimRange":
        """New range ending at index. The end may not precede the start."""
        if index < self.start:
            raise GeometryViolation(
                f"Cannot end trim at {index}, before start {self.start}"
            )
        return TrimRange(self.start, index)
    
    def __len__(self) -> int:
        return self.end - self.start + 1
    
    def __contains__(self, index: object) -> bool:
        return isinstance(index, int) and self.start <= index <= self.end


@dataclass(frozen=True, slots=True)
class CropRect:
    """
    Export-time crop rectangle.
    
    Attributes:
        x: Left edge
        y: Top edge
        width: Crop width (>= 1)
        height: Crop height (>= 1)
    """
    
    x: int
    y: int
    width: int
    height: int
    
    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.x < 0 or self.y < 0:
            raise GeometryViolation(
                f"Crop origin must be non-negative, got ({self.x}, {self.y})"
            )
        if self.width < 1 or self.height < 1:
            raise GeometryViolation(
                f"Crop size must be at least 1x1, got {self.width}x{self.height}"
            )
    
    @classmethod
    def clamped(
        cls,
        x: float,
        y: float,
        width: float,
        height: float,
        canvas_width: int,
        canvas_height: int,
    ) -> "CropRect":
        """
        Round and clamp a free-form box to the canvas.
        
        The origin is clamped to the last valid pixel and the size to
        whatever remains to the right/bottom of it, never below 1.
        
        Example:
            >>> CropRect.clamped(-3.2, 10.6, 500, 0.2, 100, 50)
            CropRect(x=0, y=11, width=100, height=1)
        """
        cx = min(max(_round_half_up(x), 0), canvas_width - 1)
        cy = min(max(_round_half_up(y), 0), canvas_height - 1)
        cw = min(max(_round_half_up(width), 1), canvas_width - cx)
        ch = min(max(_round_half_up(height), 1), canvas_height - cy)
        return cls(cx, cy, cw, ch)
    
    def validate(self, canvas_width: int, canvas_height: int) -> "CropRect":
        """Check the rectangle lies inside the canvas."""
        if self.x + self.width > canvas_width or self.y + self.height > canvas_height:
            raise GeometryViolation(
                f"Crop ({self.x}, {self.y}, {self.width}x{self.height}) exceeds "
                f"canvas {canvas_width}x{canvas_height}"
            )
        return self
    
    def slices(self) -> tuple:
        """Row and column slices selecting this rectangle from a canvas."""
        return (
            slice(self.y, self.y + self.height),
            slice(self.x, self.x + self.width),
        )
