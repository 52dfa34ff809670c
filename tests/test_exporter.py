"""
Exporter Tests
==============

Slicing, cropping, delays and independence from the seek cache.
"""

import asyncio

import numpy as np
import pytest

from patchreel.cache import SnapshotCache
from patchreel.compositing import composite_range
from patchreel.compositing.compositor import Compositor
from patchreel.errors import GeometryViolation, ResourceExhaustion
from patchreel.export import Exporter, generate_thumbnails, thumbnail_size
from patchreel.ingest.store import FrameDescriptorStore
from patchreel.models.geometry import CropRect, TrimRange

from conftest import BLUE, CLEAR, GREEN


class ExhaustedCanvas:
    """Canvas stand-in whose copies fail to allocate."""
    
    shape = (4, 4, 4)
    
    def __getitem__(self, key):
        return self
    
    def copy(self):
        raise MemoryError


class TestExport:
    """Tests for the export pass."""
    
    def test_full_range_matches_sequential(self, random_store):
        reference = list(composite_range(random_store, 8, 6))
        
        exported = Exporter(random_store).export(TrimRange.full(len(random_store)))
        
        assert len(exported) == len(random_store)
        for frame, expected in zip(exported, reference):
            assert np.array_equal(frame.pixels, expected)
    
    def test_sub_range_has_no_predecessor(self, random_store):
        reference = list(composite_range(random_store[10:21], 8, 6))
        
        exported = Exporter(random_store).export(TrimRange(10, 20))
        
        assert len(exported) == 11
        for frame, expected in zip(exported, reference):
            assert np.array_equal(frame.pixels, expected)
    
    def test_sub_range_of_quadrants(self, quadrant_store):
        """Verify frame 0 is not drawn when the export starts at frame 1."""
        exported = Exporter(quadrant_store).export(TrimRange(1, 2))
        final = exported[-1].pixels
        
        assert (final[0:2, 0:2] == GREEN).all()
        assert (final[2:4, 2:4] == BLUE).all()
        assert (final[0:2, 2:4] == CLEAR).all()
    
    def test_crop(self, random_store):
        reference = list(composite_range(random_store, 8, 6))
        crop = CropRect(2, 1, 5, 4)
        
        exported = Exporter(random_store).export(TrimRange(0, 9), crop)
        
        for frame, expected in zip(exported, reference):
            assert frame.pixels.shape == (4, 5, 4)
            assert (frame.width, frame.height) == (5, 4)
            assert np.array_equal(frame.pixels, expected[1:5, 2:7])
    
    def test_crop_touching_edges(self, random_store):
        exported = Exporter(random_store).export(TrimRange(0, 0), CropRect(7, 5, 1, 1))
        assert exported[0].pixels.shape == (1, 1, 4)
    
    def test_crop_out_of_bounds(self, random_store):
        with pytest.raises(GeometryViolation):
            Exporter(random_store).export(TrimRange(0, 3), CropRect(4, 0, 5, 1))
    
    def test_trim_out_of_bounds(self, random_store):
        with pytest.raises(GeometryViolation):
            Exporter(random_store).export(TrimRange(0, len(random_store)))
    
    def test_delays_preserved(self, make_frame):
        store = FrameDescriptorStore(1, 1, [
            make_frame(0, 0, 1, 1, delay_ms=delay) for delay in (0, 40, 0, 70)
        ])
        
        exported = Exporter(store).export(TrimRange(0, 3))
        
        assert [f.delay_ms for f in exported] == [0, 40, 0, 70]
    
    def test_delay_floor_when_requested(self, make_frame):
        store = FrameDescriptorStore(1, 1, [
            make_frame(0, 0, 1, 1, delay_ms=delay) for delay in (0, 40)
        ])
        
        exported = Exporter(store, min_delay_ms=100).export(TrimRange(0, 1))
        
        assert [f.delay_ms for f in exported] == [100, 40]
    
    def test_progress(self, quadrant_store):
        progress = []
        Exporter(quadrant_store).export(TrimRange(0, 2), on_progress=progress.append)
        assert progress == pytest.approx([1 / 3, 2 / 3, 1.0])
    
    def test_frames_are_frozen(self, quadrant_store):
        exported = Exporter(quadrant_store).export(TrimRange(0, 2))
        assert not any(f.pixels.flags.writeable for f in exported)
    
    def test_does_not_touch_cache(self, random_store):
        cache = SnapshotCache(random_store, checkpoint_interval=5)
        before = cache.ensure_frame(17)
        metrics = cache.metrics()
        
        Exporter(random_store).export(TrimRange(3, 30))
        
        assert cache.metrics() == metrics
        assert np.array_equal(cache.ensure_frame(17), before)
    
    def test_export_async(self, quadrant_store):
        exported = asyncio.run(Exporter(quadrant_store).export_async(TrimRange(0, 2)))
        assert len(exported) == 3
    
    @pytest.mark.parametrize("crop", [None, CropRect(0, 0, 2, 2)])
    def test_copy_failure_is_resource_exhaustion(self, quadrant_store, monkeypatch, crop):
        monkeypatch.setattr(Compositor, "apply", lambda self, frame: ExhaustedCanvas())
        
        with pytest.raises(ResourceExhaustion):
            Exporter(quadrant_store).export(TrimRange(0, 2), crop)


class TestThumbnails:
    """Tests for timeline thumbnail generation."""
    
    def test_size_keeps_aspect(self):
        assert thumbnail_size(8, 6, 3) == (4, 3)
        assert thumbnail_size(1, 100, 10) == (1, 10)
    
    def test_one_per_frame(self, random_store):
        thumbs = generate_thumbnails(random_store, height=3)
        
        assert len(thumbs) == len(random_store)
        assert all(t.shape == (3, 4, 4) for t in thumbs)
    
    def test_solid_frame(self, make_frame):
        store = FrameDescriptorStore(6, 6, [make_frame(0, 0, 6, 6, BLUE)])
        thumbs = generate_thumbnails(store, height=2)
        assert (thumbs[0] == BLUE).all()
    
    def test_invalid_height(self, quadrant_store):
        with pytest.raises(ValueError):
            generate_thumbnails(quadrant_store, height=0)
