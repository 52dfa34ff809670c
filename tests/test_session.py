"""
Session Tests
=============

Wiring of one loaded asset: seeking, trimming, export and reload.
"""

import asyncio

import numpy as np
import pytest

from patchreel.config import Settings
from patchreel.errors import DecodeFailure, GeometryViolation
from patchreel.models.geometry import CropRect, TrimRange
from patchreel.session import EditorSession

from conftest import CLEAR, GREEN


@pytest.fixture
def session_settings():
    return Settings.model_validate({
        "cache": {"checkpoint_interval": 2},
        "playback": {"min_frame_delay_ms": 50},
    })


@pytest.fixture
def offload_settings():
    return Settings.model_validate({
        "cache": {"checkpoint_interval": 2},
        "playback": {"offload_compositing": True},
    })


class TestEditorSession:
    """Tests for the editor session."""
    
    def test_open_rejects_bad_asset(self):
        with pytest.raises(DecodeFailure):
            EditorSession.open({"canvas_width": 1, "canvas_height": 1, "frames": []})
    
    def test_open_from_store(self, random_store, session_settings):
        session = EditorSession.open(random_store, settings=session_settings)
        
        assert session.frame_count == 37
        assert session.trim == TrimRange(0, 36)
        assert session.cache.checkpoint_interval == 2
        assert session.sequencer.min_frame_delay_ms == 50
    
    def test_seek_and_display(self, sample_asset_message, session_settings):
        shown = []
        session = EditorSession.open(
            sample_asset_message,
            settings=session_settings,
            on_frame=lambda index, frame: shown.append(index),
        )
        
        async def scenario():
            frame = await session.seek(1)
            await session.close()
            return frame
        
        frame = asyncio.run(scenario())
        
        # Frame 0 is disposed to background before frame 1 draws
        assert tuple(frame[0, 0]) == (0, 0, 0, 0)
        assert tuple(frame[0, 1]) == (0, 255, 0, 255)
        assert shown == [1]
    
    def test_trim_at_current_frame(self, random_store, session_settings):
        session = EditorSession.open(random_store, settings=session_settings)
        
        async def scenario():
            await session.seek(5)
            session.set_trim_start()
            await session.step(10)
            session.set_trim_end()
            await session.step(-30)
            with pytest.raises(GeometryViolation):
                session.set_trim_end()
            await session.close()
        
        asyncio.run(scenario())
        
        assert session.trim == TrimRange(5, 15)
        assert session.current_index == 0
    
    def test_export_uses_trim(self, random_store, session_settings):
        session = EditorSession.open(random_store, settings=session_settings)
        session.sequencer.trim = TrimRange(3, 7)
        
        exported = session.export(crop=CropRect(0, 0, 2, 2))
        
        assert len(exported) == 5
        assert exported[0].pixels.shape == (2, 2, 4)
    
    def test_export_floor_when_configured(self, sample_asset_message):
        settings = Settings.model_validate({
            "playback": {"min_frame_delay_ms": 60},
            "export": {"preserve_zero_delays": False},
        })
        session = EditorSession.open(sample_asset_message, settings=settings)
        
        assert [f.delay_ms for f in session.export()] == [80, 60]
    
    def test_thumbnails(self, random_store, session_settings):
        session = EditorSession.open(random_store, settings=session_settings)
        thumbs = session.thumbnails()
        assert len(thumbs) == 37
        assert thumbs[0].shape[0] == 60
    
    def test_reload_releases_old_asset(self, random_store, quadrant_store, session_settings):
        session = EditorSession.open(random_store, settings=session_settings)
        
        async def scenario():
            await session.seek(30)
            session.sequencer.trim = TrimRange(4, 9)
            await session.reload(quadrant_store)
            frame = await session.seek(2)
            await session.close()
            return frame
        
        frame = asyncio.run(scenario())
        
        assert session.store is quadrant_store
        assert session.trim == TrimRange(0, 2)
        assert frame.shape == (4, 4, 4)
        assert len(session.cache) == 0
    
    def test_failed_reload_keeps_session(self, random_store, session_settings):
        session = EditorSession.open(random_store, settings=session_settings)
        
        async def scenario():
            await session.seek(3)
            with pytest.raises(DecodeFailure):
                await session.reload("{}")
            frame = await session.seek(4)
            await session.close()
            return frame
        
        frame = asyncio.run(scenario())
        
        assert session.store is random_store
        assert frame.shape == (6, 8, 4)
    
    def test_metrics(self, random_store, session_settings):
        session = EditorSession.open(random_store, settings=session_settings)
        metrics = session.metrics()
        assert set(metrics) == {"cache", "gate", "sequencer"}
        assert metrics["sequencer"]["state"] == "STOPPED"


class TestOffloadedSession:
    """Reload and close while a composite runs in a worker thread."""
    
    def test_reload_during_offloaded_seek(
        self, red_store, green_dot_store, offload_settings, block_frame
    ):
        session = EditorSession.open(red_store, settings=offload_settings)
        blocker = block_frame(red_store[15])
        
        async def scenario():
            session.seek(25)
            assert await asyncio.to_thread(blocker.wait_reached)
            
            reloading = asyncio.ensure_future(session.reload(green_dot_store))
            await asyncio.sleep(0.05)
            reloaded_early = reloading.done()
            
            blocker.release()
            await reloading
            frame = await session.seek(5)
            await session.close()
            return frame, reloaded_early
        
        frame, reloaded_early = asyncio.run(scenario())
        
        assert not reloaded_early
        assert session.store is green_dot_store
        assert (frame[0, 0] == GREEN).all()
        assert (frame[3, 3] == CLEAR).all()
    
    def test_close_during_offloaded_seek(self, red_store, offload_settings, block_frame):
        session = EditorSession.open(red_store, settings=offload_settings)
        blocker = block_frame(red_store[15])
        
        async def scenario():
            seek = session.seek(25)
            assert await asyncio.to_thread(blocker.wait_reached)
            
            closing = asyncio.ensure_future(session.close())
            await asyncio.sleep(0.05)
            closed_early = closing.done()
            
            blocker.release()
            await closing
            return seek, closed_early
        
        seek, closed_early = asyncio.run(scenario())
        
        assert not closed_early
        assert seek.cancelled()
        assert len(session.cache) == 0
        assert session.cache.last_composited is None
