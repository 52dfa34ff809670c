"""
Decoder Message Schema
======================

Pydantic models for the hand-off from an external container decoder.

A decoder (GIF, APNG, WebP...) turns its bitstream into this neutral
shape; patchreel.ingest.loader converts it into FrameDescriptors.

Input Contract:
    {
        "canvas_width": 320,
        "canvas_height": 240,
        "frames": [
            {
                "left": 0, "top": 0, "width": 320, "height": 240,
                "delay_ms": 100,
                "disposal": 2,
                "encoding": "raw",
                "data": "<base64 RGBA bytes>"
            }
        ]
    }

Notes:
    - disposal uses GIF graphic-control codes (0-7)
    - "raw" data is width*height*4 straight-alpha RGBA bytes
    - "png" data is a PNG-encoded patch (alpha optional)
"""

from typing import List, Literal

from pydantic import BaseModel, Field


class PatchMessage(BaseModel):
    """
    One frame as delivered by the decoder.
    
    Attributes:
        left: Column of the patch on the canvas
        top: Row of the patch on the canvas
        width: Patch width in pixels
        height: Patch height in pixels
        delay_ms: Display duration in milliseconds
        disposal: GIF disposal code
        encoding: How `data` is encoded
        data: Base64 pixel payload
    """
    
    left: int = Field(..., ge=0, description="Patch left edge on the canvas")
    top: int = Field(..., ge=0, description="Patch top edge on the canvas")
    width: int = Field(..., gt=0, description="Patch width in pixels")
    height: int = Field(..., gt=0, description="Patch height in pixels")
    
    delay_ms: int = Field(
        default=0,
        ge=0,
        description="Display duration in milliseconds (0 = decoder gave none)",
    )
    
    disposal: int = Field(
        default=0,
        ge=0,
        le=7,
        description="GIF disposal code (0/1 none, 2 background, 3 previous)",
    )
    
    encoding: Literal["raw", "png"] = Field(
        default="raw",
        description="Payload encoding: raw RGBA bytes or PNG",
    )
    
    data: str = Field(
        ...,
        description="Base64-encoded patch pixels",
    )


class AssetMessage(BaseModel):
    """
    A complete decoded animation.
    
    Attributes:
        canvas_width: Width of the logical screen
        canvas_height: Height of the logical screen
        frames: Ordered frame patches
    """
    
    canvas_width: int = Field(..., gt=0, description="Canvas width in pixels")
    canvas_height: int = Field(..., gt=0, description="Canvas height in pixels")
    
    frames: List[PatchMessage] = Field(
        default_factory=list,
        description="Frames in display order",
    )
    
    class Config:
        """Pydantic model configuration."""
        
        json_schema_extra = {
            "example": {
                "canvas_width": 2,
                "canvas_height": 1,
                "frames": [
                    {
                        "left": 0,
                        "top": 0,
                        "width": 2,
                        "height": 1,
                        "delay_ms": 100,
                        "disposal": 0,
                        "encoding": "raw",
                        "data": "/wAA//8AAP8=",
                    }
                ],
            }
        }
