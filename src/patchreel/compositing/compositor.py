"""
Frame Compositor
================

Disposal-aware reconstruction of full frames from patch history.

Per step, advancing from frame i-1 to frame i, the order is strict:
    1. Dispose of frame i-1 (if any):
        NONE               -> nothing
        RESTORE_BACKGROUND -> clear frame i-1's rect to transparent
        RESTORE_PREVIOUS   -> copy the saved canvas over the whole canvas
    2. If frame i is RESTORE_PREVIOUS, save a copy of the canvas
    3. Draw frame i's patch with source-over blending

Blending (straight alpha, a in [0, 1]):
    out_a   = src_a + dst_a * (1 - src_a)
    out_rgb = (src_rgb * src_a + dst_rgb * dst_a * (1 - src_a)) / out_a

Opaque source pixels replace the destination exactly and fully
transparent ones leave it exactly, so GIF-style 1-bit alpha is lossless.

The compositor assumes geometry was validated by the store and is total
for valid input.
"""

import logging
from typing import Iterable, Iterator, Optional

import numpy as np

from patchreel.compositing.canvas import freeze, new_canvas, thaw
from patchreel.models.diagnostics import DiagnosticCode
from patchreel.models.frame import Disposal, FrameDescriptor


logger = logging.getLogger(__name__)


def apply_disposal(
    canvas: np.ndarray,
    prior: FrameDescriptor,
    restore_buffer: Optional[np.ndarray],
) -> bool:
    """
    Dispose of the prior frame on the canvas, in place.
    
    Args:
        canvas: Live canvas (mutated)
        prior: The frame drawn before the one about to be drawn
        restore_buffer: Canvas saved before `prior` was drawn, if any
        
    Returns:
        False if a RESTORE_PREVIOUS had no saved canvas (canvas left
        unchanged), True otherwise.
    """
    if prior.disposal is Disposal.RESTORE_BACKGROUND:
        rows, cols = prior.rect.slices()
        canvas[rows, cols] = 0
    elif prior.disposal is Disposal.RESTORE_PREVIOUS:
        if restore_buffer is None:
            logger.warning(
                f"{DiagnosticCode.RESTORE_WITHOUT_HISTORY.value}: "
                f"no saved canvas for {prior!r}, keeping canvas as-is"
            )
            return False
        canvas[...] = restore_buffer
    return True


def draw_patch(canvas: np.ndarray, frame: FrameDescriptor) -> None:
    """Source-over blend a frame's patch onto the canvas, in place."""
    rows, cols = frame.rect.slices()
    dst = canvas[rows, cols]
    src = frame.patch
    
    src_alpha = src[..., 3]
    if np.all(src_alpha == 255):
        dst[...] = src
        return
    if not src_alpha.any():
        return
    
    sa = src_alpha.astype(np.float32)[..., None] / 255.0
    da = dst[..., 3].astype(np.float32)[..., None] / 255.0
    
    out_a = sa + da * (1.0 - sa)
    premul = src[..., :3].astype(np.float32) * sa + dst[..., :3].astype(np.float32) * da * (1.0 - sa)
    
    with np.errstate(divide="ignore", invalid="ignore"):
        out_rgb = np.where(out_a > 0, premul / out_a, 0.0)
    
    dst[..., :3] = np.clip(np.rint(out_rgb), 0, 255).astype(np.uint8)
    dst[..., 3] = np.clip(np.rint(out_a[..., 0] * 255.0), 0, 255).astype(np.uint8)


class Compositor:
    """
    Stateful step engine over one owned canvas.
    
    Holds the three pieces of state that replay needs: the canvas, the
    canvas saved for the most recent RESTORE_PREVIOUS frame, and the
    previously drawn frame (whose disposal runs before the next draw).
    
    Attributes:
        width: Canvas width
        height: Canvas height
        diagnostics: Count of each DiagnosticCode raised so far
        
    Example:
        compositor = Compositor(store.canvas_width, store.canvas_height)
        for frame in store:
            compositor.apply(frame)
        final = compositor.snapshot()
    """
    
    def __init__(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
        self.diagnostics: dict = {}
        
        self._canvas: np.ndarray = new_canvas(width, height)
        self._restore_buffer: Optional[np.ndarray] = None
        self._prior: Optional[FrameDescriptor] = None
    
    @property
    def canvas(self) -> np.ndarray:
        """The live canvas. Callers must not keep or mutate it."""
        return self._canvas
    
    @property
    def restore_buffer(self) -> Optional[np.ndarray]:
        return self._restore_buffer
    
    @property
    def prior(self) -> Optional[FrameDescriptor]:
        return self._prior
    
    def reset(self) -> None:
        """Clear to transparent and forget all history."""
        self._canvas[...] = 0
        self._restore_buffer = None
        self._prior = None
    
    def restore(
        self,
        canvas: np.ndarray,
        restore_buffer: Optional[np.ndarray],
        prior: Optional[FrameDescriptor],
    ) -> None:
        """
        Resume from a saved state.
        
        Args:
            canvas: Canvas content after `prior` was drawn
            restore_buffer: Saved canvas in effect at that point
            prior: The last frame drawn (its disposal runs next)
        """
        new_restore = thaw(restore_buffer)
        self._canvas[...] = canvas
        self._restore_buffer = new_restore
        self._prior = prior
    
    def begin_sequence(self) -> None:
        """Forget the prior frame so the next apply has no disposal step."""
        self._prior = None
    
    def apply(self, frame: FrameDescriptor) -> np.ndarray:
        """
        Dispose of the prior frame, save if needed, then draw this frame.
        
        Returns:
            The live canvas (not a copy).
        """
        if self._prior is not None:
            if not apply_disposal(self._canvas, self._prior, self._restore_buffer):
                code = DiagnosticCode.RESTORE_WITHOUT_HISTORY
                self.diagnostics[code] = self.diagnostics.get(code, 0) + 1
        
        if frame.disposal is Disposal.RESTORE_PREVIOUS:
            self._restore_buffer = thaw(self._canvas)
        
        draw_patch(self._canvas, frame)
        self._prior = frame
        return self._canvas
    
    def snapshot(self) -> np.ndarray:
        """Frozen copy of the current canvas."""
        return freeze(self._canvas)


def composite_range(
    frames: Iterable[FrameDescriptor],
    width: int,
    height: int,
) -> Iterator[np.ndarray]:
    """
    Composite frames on a fresh canvas, yielding a frozen copy after each.
    
    The first frame has no predecessor, whatever came before it in the
    original sequence.
    """
    compositor = Compositor(width, height)
    for frame in frames:
        compositor.apply(frame)
        yield compositor.snapshot()
