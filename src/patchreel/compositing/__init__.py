"""
Compositing Module
==================

Disposal-aware frame reconstruction.

    - Compositor: step engine over one owned canvas
    - apply_disposal / draw_patch: the two canvas operations
    - composite_range: one-shot pass yielding frozen frames
    - new_canvas / freeze: buffer allocation and read-only copies
"""

from patchreel.compositing.canvas import freeze, new_canvas
from patchreel.compositing.compositor import (
    Compositor,
    apply_disposal,
    composite_range,
    draw_patch,
)


__all__ = [
    "Compositor",
    "apply_disposal",
    "composite_range",
    "draw_patch",
    "freeze",
    "new_canvas",
]
