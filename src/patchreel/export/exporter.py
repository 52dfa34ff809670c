"""
Exporter
========

Produces an encoder-ready frame sequence from a trim range and crop.

Every export runs its own compositing pass on its own canvas. It never
reads or writes the snapshot cache, so it can run while playback and
seeking continue.

Rules:
    - Trim and crop are validated on entry (GeometryViolation)
    - The first exported frame has no predecessor: disposal of the frame
      before trim.start is not applied
    - Delays are preserved verbatim unless a floor is requested
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from patchreel.compositing.canvas import freeze
from patchreel.compositing.compositor import Compositor
from patchreel.ingest.store import FrameDescriptorStore
from patchreel.models.geometry import CropRect, TrimRange


logger = logging.getLogger(__name__)


ProgressCallback = Callable[[float], None]


@dataclass(frozen=True, slots=True, eq=False)
class ExportedFrame:
    """
    One frame ready for the encoder.
    
    Attributes:
        pixels: Frozen RGBA buffer, cropped if a crop was given
        delay_ms: Display duration carried over from the source frame
    """
    
    pixels: np.ndarray
    delay_ms: int
    
    @property
    def width(self) -> int:
        return self.pixels.shape[1]
    
    @property
    def height(self) -> int:
        return self.pixels.shape[0]
    
    def __repr__(self) -> str:
        return f"ExportedFrame({self.width}x{self.height}, delay_ms={self.delay_ms})"


class Exporter:
    """
    Independent compositing pass for re-encoding.
    
    Example:
        exporter = Exporter(store)
        frames = exporter.export(TrimRange(5, 20), CropRect(10, 10, 64, 64))
        
        for frame in frames:
            encoder.add_frame(frame.pixels, frame.delay_ms)
    """
    
    def __init__(
        self,
        store: FrameDescriptorStore,
        min_delay_ms: Optional[int] = None,
    ) -> None:
        """
        Initialize exporter.
        
        Args:
            store: Source frames
            min_delay_ms: If set, zero delays are raised to this value.
                None keeps raw delays.
        """
        self._store = store
        self.min_delay_ms = min_delay_ms
    
    def export(
        self,
        trim: TrimRange,
        crop: Optional[CropRect] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[ExportedFrame]:
        """
        Composite and cut out the frames of a trim range.
        
        Args:
            trim: Frames to export (inclusive)
            crop: Sub-rectangle of the canvas to keep, or None for all
            on_progress: Called with done/total after each frame
            
        Returns:
            Exported frames in order
            
        Raises:
            GeometryViolation: If trim or crop is out of bounds
            ResourceExhaustion: If the export canvas cannot be allocated
        """
        store = self._store
        trim.validate(len(store))
        if crop is not None:
            crop.validate(store.canvas_width, store.canvas_height)
        
        total = len(trim)
        logger.info(
            f"Export started: frames [{trim.start}, {trim.end}] ({total}), "
            f"crop={crop}"
        )
        
        compositor = Compositor(store.canvas_width, store.canvas_height)
        exported: List[ExportedFrame] = []
        
        for done, index in enumerate(range(trim.start, trim.end + 1), start=1):
            frame = store[index]
            canvas = compositor.apply(frame)
            
            if crop is not None:
                rows, cols = crop.slices()
                pixels = freeze(canvas[rows, cols])
            else:
                pixels = freeze(canvas)
            
            exported.append(ExportedFrame(pixels=pixels, delay_ms=self._delay(frame.delay_ms)))
            
            if on_progress is not None:
                on_progress(done / total)
        
        logger.info(f"Export finished: {len(exported)} frames")
        return exported
    
    async def export_async(
        self,
        trim: TrimRange,
        crop: Optional[CropRect] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[ExportedFrame]:
        """Run export() in a worker thread."""
        return await asyncio.to_thread(self.export, trim, crop, on_progress)
    
    def _delay(self, delay_ms: int) -> int:
        if self.min_delay_ms is not None and delay_ms == 0:
            return self.min_delay_ms
        return delay_ms
