"""
Asset Loader
============

Turns decoder messages into a validated FrameDescriptorStore.

This is the ONLY place in the codebase that decodes patch payloads.

Design Rules:
    - Fails fast: any bad frame rejects the whole asset
    - Validates shape and dtype of every decoded patch
    - Returns straight-alpha RGBA (PNG patches are converted from BGRA)
"""

import base64
import binascii
import logging
from typing import Union

import cv2
import numpy as np
from pydantic import ValidationError

from patchreel.errors import DecodeFailure, PatchreelError
from patchreel.ingest.store import FrameDescriptorStore
from patchreel.models.frame import Disposal, FrameDescriptor, PatchRect
from patchreel.models.input import AssetMessage, PatchMessage


logger = logging.getLogger(__name__)


def _decode_png(payload: bytes) -> np.ndarray:
    nparr = np.frombuffer(payload, np.uint8)
    image = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED)
    
    if image is None:
        raise DecodeFailure("cv2.imdecode returned None")
    
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if image.shape[2] == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    
    raise DecodeFailure(f"Unsupported channel count: {image.shape}")


def decode_patch(message: PatchMessage) -> np.ndarray:
    """
    Decode a patch payload to an RGBA array.
    
    Args:
        message: Validated patch message
        
    Returns:
        RGBA image as np.ndarray (height, width, 4), dtype=uint8
        
    Raises:
        DecodeFailure: If decoding fails or the result has the wrong shape
    """
    try:
        payload = base64.b64decode(message.data, validate=True)
    except binascii.Error as e:
        raise DecodeFailure(f"Base64 decode failed: {e}") from e
    
    expected = (message.height, message.width, 4)
    
    if message.encoding == "raw":
        if len(payload) != message.width * message.height * 4:
            raise DecodeFailure(
                f"Raw patch has {len(payload)} bytes, expected "
                f"{message.width * message.height * 4}"
            )
        pixels = np.frombuffer(payload, np.uint8).reshape(expected)
    else:
        pixels = _decode_png(payload)
    
    if pixels.shape != expected:
        raise DecodeFailure(f"Decoded patch shape {pixels.shape}, expected {expected}")
    
    if pixels.dtype != np.uint8:
        raise DecodeFailure(f"Invalid dtype for patch: {pixels.dtype}")
    
    return pixels


def load_asset(source: Union[AssetMessage, dict, str, bytes]) -> FrameDescriptorStore:
    """
    Build a FrameDescriptorStore from a decoder message.
    
    Args:
        source: AssetMessage, its dict form, or its JSON text
        
    Returns:
        Validated store for the asset
        
    Raises:
        DecodeFailure: Malformed message, undecodable patch, or no frames
        GeometryViolation: A patch rectangle outside the canvas
    """
    try:
        if isinstance(source, AssetMessage):
            message = source
        elif isinstance(source, (str, bytes)):
            message = AssetMessage.model_validate_json(source)
        else:
            message = AssetMessage.model_validate(source)
    except ValidationError as e:
        raise DecodeFailure(f"Invalid asset message: {e}") from e
    
    if not message.frames:
        raise DecodeFailure("Asset contains no frames")
    
    frames = []
    for index, patch in enumerate(message.frames):
        try:
            frames.append(
                FrameDescriptor(
                    patch=decode_patch(patch),
                    rect=PatchRect(patch.left, patch.top, patch.width, patch.height),
                    delay_ms=patch.delay_ms,
                    disposal=Disposal.from_gif_code(patch.disposal),
                )
            )
        except PatchreelError as e:
            logger.error(f"Rejecting asset: frame {index} is invalid: {e}")
            raise type(e)(f"Frame {index}: {e}") from e
    
    return FrameDescriptorStore(message.canvas_width, message.canvas_height, frames)
