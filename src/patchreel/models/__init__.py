"""
Data Models
===========

Typed records shared across patchreel.

Models:
    Frame:
        - Disposal: Disposal directive (NONE, RESTORE_BACKGROUND, RESTORE_PREVIOUS)
        - PatchRect: Placement of a patch on the canvas
        - FrameDescriptor: One decoded frame
    
    Geometry:
        - TrimRange: Inclusive frame range
        - CropRect: Export crop rectangle
    
    Input:
        - PatchMessage, AssetMessage: Decoder hand-off schema
    
    Diagnostics:
        - DiagnosticCode: Recoverable conditions that are reported, not raised
"""

from patchreel.models.diagnostics import DiagnosticCode
from patchreel.models.frame import Disposal, FrameDescriptor, PatchRect
from patchreel.models.geometry import CropRect, TrimRange
from patchreel.models.input import AssetMessage, PatchMessage

__all__ = [
    # Frame
    "Disposal",
    "PatchRect",
    "FrameDescriptor",
    # Geometry
    "TrimRange",
    "CropRect",
    # Input
    "PatchMessage",
    "AssetMessage",
    # Diagnostics
    "DiagnosticCode",
]
