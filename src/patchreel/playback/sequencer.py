"""
Playback Sequencer
==================

Time-based playback over a trim window.

State machine:
    STOPPED --play()--> PLAYING
    PLAYING --pause()/seek()--> STOPPED

Playback always loops inside the trim range, so it never stops on its
own.

Timing:
    Each tick adds the elapsed time to an accumulator. Once it reaches
    the current frame's interval, the sequencer advances one frame
    (wrapping from trim.end to trim.start), asks the gate for that frame
    and subtracts the interval. The carried remainder is capped at
    max_catchup_intervals intervals so a stall does not cause a burst
    of catch-up frames.

    A zero delay is raised to min_frame_delay_ms during playback only;
    export keeps raw delays.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Optional, Protocol

from patchreel.ingest.store import FrameDescriptorStore
from patchreel.models.diagnostics import DiagnosticCode
from patchreel.models.geometry import TrimRange


logger = logging.getLogger(__name__)


class PlaybackState(str, Enum):
    """Sequencer states."""
    
    STOPPED = "STOPPED"
    PLAYING = "PLAYING"


class FrameRequester(Protocol):
    """
    Anything that accepts frame requests.
    
    Implemented by SeekGate.
    """
    
    def submit(self, index: int) -> asyncio.Future:
        ...


class Sequencer:
    """
    Drives playback and manual seeking.
    
    Attributes:
        min_frame_delay_ms: Interval used for zero-delay frames
        max_catchup_intervals: Cap on carried time, in frame intervals
        
    Example:
        sequencer = Sequencer(store, gate, TrimRange.full(len(store)))
        sequencer.play()
        
        task = asyncio.create_task(sequencer.run(tick_interval_ms=16))
        ...
        sequencer.stop()
        await task
    """
    
    def __init__(
        self,
        store: FrameDescriptorStore,
        gate: FrameRequester,
        trim: Optional[TrimRange] = None,
        min_frame_delay_ms: int = 100,
        max_catchup_intervals: int = 5,
    ) -> None:
        """
        Initialize sequencer.
        
        Args:
            store: Frames being played
            gate: Where frame requests go
            trim: Loop window (defaults to every frame)
            min_frame_delay_ms: Playback interval for zero-delay frames (> 0)
            max_catchup_intervals: Carry cap in intervals (>= 1)
        """
        if min_frame_delay_ms <= 0:
            raise ValueError("min_frame_delay_ms must be positive")
        if max_catchup_intervals < 1:
            raise ValueError("max_catchup_intervals must be >= 1")
        
        self._store = store
        self._gate = gate
        self.min_frame_delay_ms = min_frame_delay_ms
        self.max_catchup_intervals = max_catchup_intervals
        
        self._trim = (trim or TrimRange.full(len(store))).validate(len(store))
        self._state = PlaybackState.STOPPED
        self._current: int = self._trim.start
        self._accumulator: float = 0.0
        self._last_request: Optional[asyncio.Future] = None
        
        # Scheduler
        self._running: bool = False
        self._stop_event: asyncio.Event = asyncio.Event()
        
        # Metrics
        self._frames_advanced: int = 0
        self._loops: int = 0
        self._floored_delays: int = 0
    
    @property
    def state(self) -> PlaybackState:
        return self._state
    
    @property
    def is_playing(self) -> bool:
        return self._state is PlaybackState.PLAYING
    
    @property
    def current_index(self) -> int:
        return self._current
    
    @property
    def last_request(self) -> Optional[asyncio.Future]:
        """Future of the most recent frame request, if any."""
        return self._last_request
    
    @property
    def trim(self) -> TrimRange:
        return self._trim
    
    @trim.setter
    def trim(self, value: TrimRange) -> None:
        self._trim = value.validate(len(self._store))
        logger.info(f"Trim set to [{value.start}, {value.end}]")
    
    def frame_interval_ms(self, index: int) -> int:
        """Playback interval for a frame, with the zero-delay floor applied."""
        delay = self._store[index].delay_ms
        return delay if delay > 0 else self.min_frame_delay_ms
    
    def play(self) -> None:
        """Start playback from the current frame (or trim.start if outside)."""
        if self.is_playing:
            return
        if self._current not in self._trim:
            self._current = self._trim.start
        self._accumulator = 0.0
        self._state = PlaybackState.PLAYING
        logger.info(f"Playback started at frame {self._current}")
    
    def pause(self) -> None:
        """Stop playback, keeping the current frame."""
        if not self.is_playing:
            return
        self._state = PlaybackState.STOPPED
        self._accumulator = 0.0
        logger.info(f"Playback paused at frame {self._current}")
    
    def toggle(self) -> PlaybackState:
        if self.is_playing:
            self.pause()
        else:
            self.play()
        return self._state
    
    def tick(self, elapsed_ms: float) -> Optional[int]:
        """
        Advance playback by elapsed time.
        
        Args:
            elapsed_ms: Time since the previous tick
            
        Returns:
            The frame requested on this tick, or None if none was.
        """
        if not self.is_playing:
            return None
        
        self._accumulator += max(0.0, elapsed_ms)
        interval = self.frame_interval_ms(self._current)
        if self._accumulator < interval:
            return None
        
        if self._store[self._current].delay_ms == 0:
            self._floored_delays += 1
            logger.debug(
                f"{DiagnosticCode.DELAY_FLOORED.value}: frame {self._current} "
                f"played for {interval}ms"
            )
        
        target = self._current + 1
        if target > self._trim.end or target < self._trim.start:
            target = self._trim.start
            self._loops += 1
        
        self._current = target
        self._last_request = self._gate.submit(target)
        self._frames_advanced += 1
        
        self._accumulator -= interval
        cap = interval * self.max_catchup_intervals
        if self._accumulator > cap:
            self._accumulator = cap
        
        return target
    
    def seek(self, index: int) -> asyncio.Future:
        """
        Jump to a frame, bypassing timing. Pauses playback.
        
        Returns:
            The gate's future for this request.
        """
        self._store.check_index(index)
        self.pause()
        self._current = index
        self._last_request = self._gate.submit(index)
        return self._last_request
    
    async def run(self, tick_interval_ms: float = 16.0) -> None:
        """
        Scheduler loop: tick with wall-clock elapsed time until stop().
        
        Args:
            tick_interval_ms: Time between ticks
        """
        self._running = True
        self._stop_event.clear()
        last = time.monotonic()
        
        logger.info(f"Sequencer scheduler running, tick={tick_interval_ms}ms")
        
        while self._running:
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=tick_interval_ms / 1000.0,
                )
                break
            except asyncio.TimeoutError:
                pass
            
            now = time.monotonic()
            self.tick((now - last) * 1000.0)
            last = now
        
        logger.info("Sequencer scheduler stopped")
    
    def stop(self) -> None:
        """Signal the scheduler loop to exit."""
        self._running = False
        self._stop_event.set()
    
    def metrics(self) -> dict:
        """Get sequencer metrics for observability."""
        return {
            "state": self._state.value,
            "current_index": self._current,
            "trim": [self._trim.start, self._trim.end],
            "frames_advanced": self._frames_advanced,
            "loops": self._loops,
            "floored_delays": self._floored_delays,
        }
