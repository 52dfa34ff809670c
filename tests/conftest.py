"""
Test Configuration
==================

Pytest fixtures and test configuration for patchreel.
"""

import base64
import threading

import numpy as np
import pytest

from patchreel.compositing.compositor import Compositor
from patchreel.ingest.store import FrameDescriptorStore
from patchreel.models.frame import Disposal, FrameDescriptor, PatchRect


RED = (255, 0, 0, 255)
GREEN = (0, 255, 0, 255)
BLUE = (0, 0, 255, 255)
CLEAR = (0, 0, 0, 0)


@pytest.fixture
def make_frame():
    """Factory for solid-colour frames."""
    
    def _make(left, top, width, height, rgba=RED, disposal=Disposal.NONE, delay_ms=100):
        patch = np.empty((height, width, 4), dtype=np.uint8)
        patch[...] = rgba
        return FrameDescriptor(
            patch=patch,
            rect=PatchRect(left, top, width, height),
            delay_ms=delay_ms,
            disposal=disposal,
        )
    
    return _make


@pytest.fixture
def quadrant_store(make_frame):
    """
    3-frame 4x4 sequence.
    
    Frame 0 fills the canvas and is disposed to background, frame 1 draws
    the top-left quadrant, frame 2 the bottom-right quadrant.
    """
    return FrameDescriptorStore(4, 4, [
        make_frame(0, 0, 4, 4, RED, Disposal.RESTORE_BACKGROUND),
        make_frame(0, 0, 2, 2, GREEN, Disposal.NONE),
        make_frame(2, 2, 2, 2, BLUE, Disposal.NONE),
    ])


@pytest.fixture
def random_store():
    """37 frames of random patches, disposals, delays and alpha on an 8x6 canvas."""
    rng = np.random.default_rng(1234)
    width, height = 8, 6
    disposals = list(Disposal)
    
    frames = []
    for _ in range(37):
        w = int(rng.integers(1, width + 1))
        h = int(rng.integers(1, height + 1))
        left = int(rng.integers(0, width - w + 1))
        top = int(rng.integers(0, height - h + 1))
        
        patch = rng.integers(0, 256, size=(h, w, 4), dtype=np.uint8)
        patch[..., 3] = rng.choice([0, 128, 255], size=(h, w))
        
        frames.append(FrameDescriptor(
            patch=patch,
            rect=PatchRect(left, top, w, h),
            delay_ms=int(rng.integers(0, 120)),
            disposal=disposals[int(rng.integers(0, len(disposals)))],
        ))
    
    return FrameDescriptorStore(width, height, frames)


@pytest.fixture
def uniform_store(make_frame):
    """10 full-canvas frames of 100ms each on a 2x2 canvas."""
    return FrameDescriptorStore(2, 2, [
        make_frame(0, 0, 2, 2, (i * 20, 0, 0, 255), delay_ms=100)
        for i in range(10)
    ])


@pytest.fixture
def sample_asset_message():
    """Provide a sample decoder message (two frames on a 2x1 canvas)."""
    red_red = bytes([255, 0, 0, 255, 255, 0, 0, 255])
    green = bytes([0, 255, 0, 255])
    return {
        "canvas_width": 2,
        "canvas_height": 1,
        "frames": [
            {
                "left": 0, "top": 0, "width": 2, "height": 1,
                "delay_ms": 80, "disposal": 2,
                "encoding": "raw",
                "data": base64.b64encode(red_red).decode("ascii"),
            },
            {
                "left": 1, "top": 0, "width": 1, "height": 1,
                "delay_ms": 0, "disposal": 1,
                "encoding": "raw",
                "data": base64.b64encode(green).decode("ascii"),
            },
        ],
    }


@pytest.fixture
def red_store(make_frame):
    """30 opaque full-canvas red frames on a 4x4 canvas."""
    return FrameDescriptorStore(4, 4, [make_frame(0, 0, 4, 4, RED) for _ in range(30)])


@pytest.fixture
def green_dot_store(make_frame):
    """30 single green pixels at the origin of a 4x4 canvas."""
    return FrameDescriptorStore(4, 4, [make_frame(0, 0, 1, 1, GREEN) for _ in range(30)])


class FrameBlocker:
    """Holds Compositor.apply on one frame until released."""
    
    def __init__(self, frame):
        self.frame = frame
        self.reached = threading.Event()
        self.released = threading.Event()
    
    def wait_reached(self) -> bool:
        return self.reached.wait(timeout=5)
    
    def release(self) -> None:
        self.released.set()


@pytest.fixture
def block_frame(monkeypatch):
    """Factory: block compositing (in any thread) when it reaches a frame."""
    original_apply = Compositor.apply
    blockers = []
    
    def blocking_apply(self, frame):
        for blocker in blockers:
            if frame is blocker.frame:
                blocker.reached.set()
                blocker.released.wait(timeout=5)
        return original_apply(self, frame)
    
    monkeypatch.setattr(Compositor, "apply", blocking_apply)
    
    def _block(frame):
        blocker = FrameBlocker(frame)
        blockers.append(blocker)
        return blocker
    
    yield _block
    
    for blocker in blockers:
        blocker.release()
