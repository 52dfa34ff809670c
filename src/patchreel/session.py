"""
Editor Session
==============

Wiring for one loaded asset: store, cache, seek gate, sequencer and
exporter, built from Settings.

A session is only created once its asset loaded successfully. Loading
a new asset into an existing session releases every buffer that
belonged to the old one before the new store is attached.

Example:
    session = EditorSession.open(asset_json, on_frame=display.show)
    
    await session.seek(12)
    session.set_trim_start()
    await session.step(+30)
    session.set_trim_end()
    
    frames = session.export(crop=CropRect(0, 0, 64, 64))
    await session.close()
"""

import asyncio
import logging
from typing import List, Optional, Union

import numpy as np

from patchreel.cache.snapshot_cache import SnapshotCache
from patchreel.config import Settings, settings as default_settings
from patchreel.export.exporter import ExportedFrame, Exporter, ProgressCallback
from patchreel.export.thumbnails import generate_thumbnails
from patchreel.ingest.loader import load_asset
from patchreel.ingest.store import FrameDescriptorStore
from patchreel.models.geometry import CropRect, TrimRange
from patchreel.models.input import AssetMessage
from patchreel.playback.gate import FrameCallback, SeekGate
from patchreel.playback.sequencer import Sequencer


logger = logging.getLogger(__name__)


AssetSource = Union[FrameDescriptorStore, AssetMessage, dict, str, bytes]


def _to_store(source: AssetSource) -> FrameDescriptorStore:
    if isinstance(source, FrameDescriptorStore):
        return source
    return load_asset(source)


class EditorSession:
    """
    Everything the editor needs for one asset.
    
    Attributes:
        settings: Configuration the components were built from
        store: Frames of the loaded asset
        cache: Live canvas and snapshots
        gate: Single-flight seek gate
        sequencer: Playback state machine
        exporter: Independent export pass
    """
    
    def __init__(
        self,
        store: FrameDescriptorStore,
        settings: Optional[Settings] = None,
        on_frame: Optional[FrameCallback] = None,
    ) -> None:
        self.settings = settings or default_settings
        self._on_frame = on_frame
        self.cache = SnapshotCache(store, self.settings.cache.checkpoint_interval)
        self._build(store)
    
    @classmethod
    def open(
        cls,
        source: AssetSource,
        settings: Optional[Settings] = None,
        on_frame: Optional[FrameCallback] = None,
    ) -> "EditorSession":
        """
        Load an asset and build a session for it.
        
        Raises:
            DecodeFailure / GeometryViolation: The asset was rejected; no
                session is created
        """
        store = _to_store(source)
        return cls(store, settings=settings, on_frame=on_frame)
    
    def _build(self, store: FrameDescriptorStore) -> None:
        playback = self.settings.playback
        
        self.store = store
        self.gate = SeekGate(
            self.cache,
            on_frame=self._on_frame,
            offload=playback.offload_compositing,
        )
        self.sequencer = Sequencer(
            store,
            self.gate,
            TrimRange.full(len(store)),
            min_frame_delay_ms=playback.min_frame_delay_ms,
            max_catchup_intervals=playback.max_catchup_intervals,
        )
        self.exporter = Exporter(
            store,
            min_delay_ms=(
                None if self.settings.export.preserve_zero_delays
                else playback.min_frame_delay_ms
            ),
        )
        logger.info(f"EditorSession ready: {store!r}")
    
    @property
    def frame_count(self) -> int:
        return len(self.store)
    
    @property
    def current_index(self) -> int:
        return self.sequencer.current_index
    
    @property
    def trim(self) -> TrimRange:
        return self.sequencer.trim
    
    def seek(self, index: int) -> asyncio.Future:
        """Scrub to a frame (pauses playback)."""
        return self.sequencer.seek(index)
    
    def step(self, delta: int) -> asyncio.Future:
        """Seek relative to the current frame, clamped to the asset."""
        index = min(max(self.current_index + delta, 0), self.frame_count - 1)
        return self.sequencer.seek(index)
    
    def set_trim_start(self) -> TrimRange:
        """Start the trim range at the current frame."""
        self.sequencer.trim = self.trim.with_start(self.current_index)
        return self.trim
    
    def set_trim_end(self) -> TrimRange:
        """End the trim range at the current frame."""
        self.sequencer.trim = self.trim.with_end(self.current_index)
        return self.trim
    
    def export(
        self,
        crop: Optional[CropRect] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[ExportedFrame]:
        """Export the current trim range."""
        return self.exporter.export(self.trim, crop, on_progress)
    
    async def export_async(
        self,
        crop: Optional[CropRect] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[ExportedFrame]:
        return await self.exporter.export_async(self.trim, crop, on_progress)
    
    def thumbnails(self) -> List[np.ndarray]:
        return generate_thumbnails(self.store, self.settings.thumbnails.height)
    
    async def reload(self, source: AssetSource) -> None:
        """
        Replace the loaded asset.
        
        The new asset is decoded first; if it is rejected the session
        keeps the old one untouched.
        """
        store = _to_store(source)
        
        self.sequencer.stop()
        self.sequencer.pause()
        await self.gate.stop()
        
        self.cache.rebind(store)
        self._build(store)
    
    async def close(self) -> None:
        """Stop playback and seeking, and release every buffer."""
        self.sequencer.stop()
        self.sequencer.pause()
        await self.gate.stop()
        self.cache.release()
        logger.info("EditorSession closed")
    
    def metrics(self) -> dict:
        """Combined component metrics for observability."""
        return {
            "cache": self.cache.metrics(),
            "gate": self.gate.metrics(),
            "sequencer": self.sequencer.metrics(),
        }
