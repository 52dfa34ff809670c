"""
Snapshot Cache
==============

Checkpoint-indexed random access into a composited frame sequence.

The cache owns one live Compositor and a sparse set of frozen
snapshots. A request for frame N is served by:

    1. Forward continuation: if N >= the last composited index, replay
       only the frames after it on the live canvas (sequential playback
       costs O(1) per frame).
    2. Otherwise: restore the nearest snapshot at or below N (binary
       search over sorted checkpoint indices) and replay from there, or
       start from an empty canvas at frame 0.

Every replayed index that is a multiple of the checkpoint interval is
captured as a snapshot. Snapshots are staged during replay and committed
only when the whole replay succeeds, so a failed request never changes
the stored set. A replay still running when the cache is released (for
example in a worker thread) commits nothing either.

Each snapshot keeps the save-for-restore canvas that was live at its
index, which makes resuming from it pixel-identical to replaying from
frame 0.

Memory:
    O(frame_count / K) canvases, plus the live canvas and at most one
    saved-for-restore canvas.
"""

import bisect
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from patchreel.compositing.canvas import freeze
from patchreel.compositing.compositor import Compositor
from patchreel.ingest.store import FrameDescriptorStore


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, eq=False)
class Snapshot:
    """
    Canvas state immediately after a frame was composited.
    
    Attributes:
        frame_index: The frame this state follows
        canvas: Frozen full canvas
        restore_buffer: Frozen saved-for-restore canvas in effect, or None
    """
    
    frame_index: int
    canvas: np.ndarray
    restore_buffer: Optional[np.ndarray]
    
    def __repr__(self) -> str:
        return (
            f"Snapshot(frame_index={self.frame_index}, "
            f"has_restore_buffer={self.restore_buffer is not None})"
        )


class SnapshotCache:
    """
    Seek cache over one asset's frames.
    
    Attributes:
        checkpoint_interval: Snapshot spacing K, in frames
        last_composited: Index held by the live canvas, or None
        
    Example:
        cache = SnapshotCache(store, checkpoint_interval=10)
        
        frame = cache.ensure_frame(42)   # replays 0..42, keeps 0, 10, 20, 30, 40
        frame = cache.ensure_frame(37)   # restores 30, replays 31..37
    """
    
    def __init__(
        self,
        store: FrameDescriptorStore,
        checkpoint_interval: int = 10,
    ) -> None:
        """
        Initialize snapshot cache.
        
        Args:
            store: Frames to composite
            checkpoint_interval: Snapshot spacing K. Must be >= 1.
        """
        if checkpoint_interval < 1:
            raise ValueError("checkpoint_interval must be >= 1")
        
        self.checkpoint_interval = checkpoint_interval
        
        self._store: Optional[FrameDescriptorStore] = None
        self._compositor: Optional[Compositor] = None
        self._snapshots: Dict[int, Snapshot] = {}
        self._indices: List[int] = []
        self._last_composited: Optional[int] = None
        # Bumped by release; a replay from an older generation never commits
        self._generation: int = 0
        
        # Metrics
        self._continuations: int = 0
        self._restores: int = 0
        self._cold_starts: int = 0
        self._replayed_frames: int = 0
        
        self.rebind(store)
    
    @property
    def store(self) -> FrameDescriptorStore:
        return self._store
    
    @property
    def last_composited(self) -> Optional[int]:
        return self._last_composited
    
    @property
    def snapshot_indices(self) -> List[int]:
        """Sorted indices that have a stored snapshot."""
        return list(self._indices)
    
    def __len__(self) -> int:
        return len(self._snapshots)
    
    def __contains__(self, index: object) -> bool:
        return index in self._snapshots
    
    def get_snapshot(self, index: int) -> Optional[Snapshot]:
        return self._snapshots.get(index)
    
    def nearest_snapshot(self, index: int) -> Optional[Snapshot]:
        """Snapshot with the greatest index <= index, or None."""
        pos = bisect.bisect_right(self._indices, index) - 1
        if pos < 0:
            return None
        return self._snapshots[self._indices[pos]]
    
    def ensure_frame(self, target_index: int) -> np.ndarray:
        """
        Composite up to a frame and return its canvas.
        
        Args:
            target_index: Frame to produce
            
        Returns:
            Frozen copy of the canvas immediately after target_index
            
        Raises:
            GeometryViolation: If target_index is out of range
            ResourceExhaustion: If a buffer cannot be allocated
        """
        compositor = self._replay_to(target_index, pin=False)
        return compositor.snapshot()
    
    def pin(self, index: int) -> Snapshot:
        """
        Composite a frame and keep a snapshot of it, even off the grid.
        
        Returns:
            The stored snapshot for index
        """
        compositor = self._replay_to(index, pin=True)
        snapshot = self._snapshots.get(index)
        if snapshot is None:
            # Released while replaying
            snapshot = self._capture(compositor, index)
        return snapshot
    
    def release(self) -> None:
        """Drop every snapshot and the live canvas."""
        released = len(self._snapshots)
        self._generation += 1
        self._snapshots.clear()
        self._indices.clear()
        self._compositor = None
        self._last_composited = None
        logger.info(f"SnapshotCache released {released} snapshots")
    
    def rebind(self, store: FrameDescriptorStore) -> None:
        """
        Attach the cache to a new asset.
        
        Every buffer belonging to the previous store is released first.
        """
        if self._store is not None:
            self.release()
        self._store = store
        self._compositor = None
        logger.info(
            f"SnapshotCache bound to {store!r}, K={self.checkpoint_interval}"
        )
    
    def _live(self) -> Compositor:
        if self._compositor is None:
            self._compositor = Compositor(
                self._store.canvas_width, self._store.canvas_height
            )
        return self._compositor
    
    def _replay_to(self, target_index: int, pin: bool) -> Compositor:
        store = self._store
        generation = self._generation
        store.check_index(target_index)
        
        compositor = self._live()
        last = self._last_composited
        
        if last is not None and target_index >= last:
            start = last + 1
            self._continuations += 1
        else:
            nearest = self.nearest_snapshot(target_index)
            if nearest is not None:
                compositor.restore(
                    nearest.canvas,
                    nearest.restore_buffer,
                    store[nearest.frame_index],
                )
                start = nearest.frame_index + 1
                self._restores += 1
            else:
                compositor.reset()
                start = 0
                self._cold_starts += 1
        
        logger.debug(
            f"ensure_frame({target_index}): replaying {start}..{target_index} "
            f"(last={last})"
        )
        
        staged: Dict[int, Snapshot] = {}
        try:
            # Nothing is live until the replay finishes
            self._last_composited = None
            
            for index in range(start, target_index + 1):
                compositor.apply(store[index])
                if index % self.checkpoint_interval == 0 and index not in self._snapshots:
                    staged[index] = self._capture(compositor, index)
            
            if pin and target_index not in self._snapshots and target_index not in staged:
                staged[target_index] = self._capture(compositor, target_index)
        except Exception:
            logger.error(
                f"Replay to frame {target_index} failed, discarding live canvas"
            )
            if generation == self._generation:
                self._compositor = None
            raise
        
        if generation != self._generation:
            logger.warning(
                f"Replay to frame {target_index} finished after the cache was "
                f"released, discarding its snapshots"
            )
            return compositor
        
        for index, snapshot in staged.items():
            self._snapshots[index] = snapshot
            bisect.insort(self._indices, index)
        
        self._replayed_frames += target_index + 1 - start
        self._last_composited = target_index
        return compositor
    
    @staticmethod
    def _capture(compositor: Compositor, index: int) -> Snapshot:
        restore_buffer = compositor.restore_buffer
        return Snapshot(
            frame_index=index,
            canvas=compositor.snapshot(),
            restore_buffer=freeze(restore_buffer) if restore_buffer is not None else None,
        )
    
    def metrics(self) -> dict:
        """
        Get cache metrics for observability.
        
        Returns:
            Dict with snapshot count and replay counters
        """
        return {
            "snapshots": len(self._snapshots),
            "checkpoint_interval": self.checkpoint_interval,
            "last_composited": self._last_composited,
            "continuations": self._continuations,
            "restores": self._restores,
            "cold_starts": self._cold_starts,
            "replayed_frames": self._replayed_frames,
        }
