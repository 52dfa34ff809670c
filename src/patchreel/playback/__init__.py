"""
Playback Module
===============

Timing and scheduling of live-canvas compositing.

    - SeekGate: single-slot, latest-wins, single-flight request gate
    - Sequencer: STOPPED/PLAYING state machine with a timing accumulator

Example:
    from patchreel.playback import SeekGate, Sequencer
    
    gate = SeekGate(cache, on_frame=show)
    sequencer = Sequencer(store, gate)
    
    sequencer.play()
    task = asyncio.create_task(sequencer.run())
"""

from patchreel.playback.gate import SeekGate
from patchreel.playback.sequencer import PlaybackState, Sequencer


__all__ = [
    "PlaybackState",
    "SeekGate",
    "Sequencer",
]
