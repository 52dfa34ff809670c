"""
Frame Descriptor Store
======================

Ordered, immutable sequence of decoded frames for one asset.

The store is the single owner of FrameDescriptors for the lifetime of
a loaded asset. It validates every descriptor against the canvas once,
at construction; downstream stages trust its contents.

Design Rules:
    - Fixed after construction (no append, no mutation)
    - Zero frames is a DecodeFailure
    - Out-of-canvas rectangles are a GeometryViolation
"""

import logging
from typing import Iterable, Iterator, List, Sequence, Union, overload

from patchreel.errors import DecodeFailure, GeometryViolation
from patchreel.models.frame import FrameDescriptor


logger = logging.getLogger(__name__)


class FrameDescriptorStore(Sequence[FrameDescriptor]):
    """
    Validated frame sequence with its canvas dimensions.
    
    Attributes:
        canvas_width: Width of the full canvas
        canvas_height: Height of the full canvas
        
    Example:
        store = FrameDescriptorStore(320, 240, frames)
        
        for index, frame in enumerate(store):
            print(index, frame.rect, frame.delay_ms)
    """
    
    def __init__(
        self,
        canvas_width: int,
        canvas_height: int,
        frames: Iterable[FrameDescriptor],
    ) -> None:
        """
        Build and validate the store.
        
        Args:
            canvas_width: Canvas width in pixels (> 0)
            canvas_height: Canvas height in pixels (> 0)
            frames: Decoded frames in display order
            
        Raises:
            GeometryViolation: Bad canvas size or a rect outside the canvas
            DecodeFailure: No frames, or an entry is not a FrameDescriptor
        """
        if canvas_width <= 0 or canvas_height <= 0:
            raise GeometryViolation(
                f"Canvas size must be positive, got {canvas_width}x{canvas_height}"
            )
        
        self._canvas_width = canvas_width
        self._canvas_height = canvas_height
        self._frames: tuple = tuple(frames)
        
        if not self._frames:
            raise DecodeFailure("Asset contains no frames")
        
        for index, frame in enumerate(self._frames):
            if not isinstance(frame, FrameDescriptor):
                raise DecodeFailure(
                    f"Frame {index} is {type(frame).__name__}, not a FrameDescriptor"
                )
            if not frame.rect.fits(canvas_width, canvas_height):
                raise GeometryViolation(
                    f"Frame {index} rect {frame.rect} exceeds canvas "
                    f"{canvas_width}x{canvas_height}"
                )
        
        logger.info(
            f"FrameDescriptorStore loaded: {len(self._frames)} frames, "
            f"canvas {canvas_width}x{canvas_height}"
        )
    
    @property
    def canvas_width(self) -> int:
        return self._canvas_width
    
    @property
    def canvas_height(self) -> int:
        return self._canvas_height
    
    @property
    def canvas_shape(self) -> tuple:
        """numpy shape of a full canvas buffer."""
        return (self._canvas_height, self._canvas_width, 4)
    
    @property
    def total_duration_ms(self) -> int:
        """Sum of raw frame delays."""
        return sum(frame.delay_ms for frame in self._frames)
    
    @overload
    def __getitem__(self, index: int) -> FrameDescriptor: ...
    
    @overload
    def __getitem__(self, index: slice) -> List[FrameDescriptor]: ...
    
    def __getitem__(
        self, index: Union[int, slice]
    ) -> Union[FrameDescriptor, List[FrameDescriptor]]:
        if isinstance(index, slice):
            return list(self._frames[index])
        return self._frames[index]
    
    def __len__(self) -> int:
        return len(self._frames)
    
    def __iter__(self) -> Iterator[FrameDescriptor]:
        return iter(self._frames)
    
    def check_index(self, index: int) -> int:
        """
        Validate a frame index.
        
        Returns:
            The index, unchanged.
            
        Raises:
            GeometryViolation: If the index is outside [0, len - 1]
        """
        if not 0 <= index < len(self._frames):
            raise GeometryViolation(
                f"Frame index {index} out of range for {len(self._frames)} frames"
            )
        return index
    
    def __repr__(self) -> str:
        return (
            f"FrameDescriptorStore(frames={len(self._frames)}, "
            f"canvas={self._canvas_width}x{self._canvas_height})"
        )
