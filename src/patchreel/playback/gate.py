"""
Seek Gate
=========

Single-flight, latest-wins scheduler for live-canvas compositing.

Playback ticks and manual seeks both go through the gate, so the live
canvas is only ever touched by one composite at a time.

Design Rules:
    - One pending slot: a new request overwrites it (no queue)
    - A superseded request resolves to None; it is dropped, not failed
    - One worker task; at most one composite in flight
    - Failures are logged and set on the request's future; the worker
      keeps running
    - Consumers only ever receive frozen copies
"""

import asyncio
import logging
from typing import Callable, Optional, Tuple

import numpy as np

from patchreel.cache.snapshot_cache import SnapshotCache
from patchreel.models.diagnostics import DiagnosticCode


logger = logging.getLogger(__name__)


FrameCallback = Callable[[int, np.ndarray], None]


def _mark_retrieved(future: asyncio.Future) -> None:
    # Failures are already logged by the worker
    if not future.cancelled():
        future.exception()


class SeekGate:
    """
    Single-slot mailbox plus one worker loop.
    
    Attributes:
        dropped_count: Requests superseded before they started
        
    Example:
        gate = SeekGate(cache, on_frame=display.show)
        
        gate.submit(10)
        frame = await gate.submit(25)   # 10 may be dropped
        
        await gate.idle()
        await gate.stop()
    """
    
    def __init__(
        self,
        cache: SnapshotCache,
        on_frame: Optional[FrameCallback] = None,
        offload: bool = False,
    ) -> None:
        """
        Initialize seek gate.
        
        Args:
            cache: Cache that owns the live canvas
            on_frame: Called with (index, frozen canvas) after each composite
            offload: Run compositing in a worker thread via asyncio.to_thread
        """
        self._cache = cache
        self._on_frame = on_frame
        self._offload = offload
        
        # State
        self._pending: Optional[Tuple[int, asyncio.Future]] = None
        self._in_flight: Optional[int] = None
        self._worker: Optional[asyncio.Task] = None
        self._offloaded: Optional[asyncio.Future] = None
        self._wakeup: asyncio.Event = asyncio.Event()
        self._idle: asyncio.Event = asyncio.Event()
        self._idle.set()
        
        # Metrics
        self._submitted: int = 0
        self._completed: int = 0
        self._failed: int = 0
        self._dropped_count: int = 0
    
    @property
    def dropped_count(self) -> int:
        return self._dropped_count
    
    @property
    def pending_index(self) -> Optional[int]:
        return self._pending[0] if self._pending is not None else None
    
    @property
    def in_flight(self) -> Optional[int]:
        return self._in_flight
    
    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()
    
    def start(self) -> None:
        """Start the worker task. Must be called from a running loop."""
        if self.running:
            return
        self._worker = asyncio.get_running_loop().create_task(self._run())
        logger.info("SeekGate worker started")
    
    def submit(self, index: int) -> asyncio.Future:
        """
        Request a frame, replacing any request not yet started.
        
        Args:
            index: Frame to composite
            
        Returns:
            Future resolving to the frozen canvas, or None if superseded.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        future.add_done_callback(_mark_retrieved)
        self._submitted += 1
        
        if self._pending is not None:
            old_index, old_future = self._pending
            if not old_future.done():
                old_future.set_result(None)
            self._dropped_count += 1
            logger.debug(
                f"{DiagnosticCode.SEEK_SUPERSEDED.value}: seek to {old_index} "
                f"replaced by {index}"
            )
        
        self._pending = (index, future)
        self._idle.clear()
        self._wakeup.set()
        
        if not self.running:
            self.start()
        
        return future
    
    async def idle(self) -> None:
        """Wait until nothing is pending or in flight."""
        await self._idle.wait()
    
    async def stop(self) -> None:
        """
        Stop the worker. A pending request resolves to None.
        
        Returns only once no composite is running, including one
        offloaded to a worker thread.
        """
        if self._pending is not None:
            _, future = self._pending
            self._pending = None
            if not future.done():
                future.set_result(None)
        
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
            logger.info("SeekGate worker stopped")
        
        # A cancelled worker does not stop its thread
        await self._wait_offloaded()
        
        if not self.running:
            self._idle.set()
    
    async def _run(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            
            while self._pending is not None:
                index, future = self._pending
                self._pending = None
                await self._process(index, future)
                # Let newer submissions land in the slot
                await asyncio.sleep(0)
            
            if self._pending is None:
                self._idle.set()
    
    async def _wait_offloaded(self) -> None:
        """Wait for a composite still running in a worker thread."""
        offloaded = self._offloaded
        if offloaded is not None and not offloaded.done():
            await asyncio.wait({offloaded})
    
    async def _process(self, index: int, future: asyncio.Future) -> None:
        self._in_flight = index
        try:
            if self._offload:
                await self._wait_offloaded()
                self._offloaded = asyncio.ensure_future(
                    asyncio.to_thread(self._cache.ensure_frame, index)
                )
                self._offloaded.add_done_callback(_mark_retrieved)
                frame = await asyncio.shield(self._offloaded)
            else:
                frame = self._cache.ensure_frame(index)
            if self._on_frame is not None:
                self._on_frame(index, frame)
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            self._failed += 1
            logger.error(f"Seek to frame {index} failed: {e}")
            if not future.done():
                future.set_exception(e)
        else:
            self._completed += 1
            if not future.done():
                future.set_result(frame)
        finally:
            self._in_flight = None
    
    def metrics(self) -> dict:
        """
        Get gate metrics for observability.
        
        Returns:
            Dict with submitted, completed, failed and dropped counts
        """
        return {
            "submitted": self._submitted,
            "completed": self._completed,
            "failed": self._failed,
            "dropped_count": self._dropped_count,
            "pending_index": self.pending_index,
            "in_flight": self._in_flight,
        }
