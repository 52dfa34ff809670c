#!/usr/bin/env python3
"""
Seek Benchmark Script
=====================

Standalone script to measure scrubbing cost of the snapshot cache.

This script:
    1. Builds a synthetic animation (random patches and disposals)
    2. Replays a scrubbing session (bursts of seeks through the gate)
    3. Checks every delivered frame against a sequential composite
    4. Reports latency, replayed frames and dropped seeks

Usage:
    python scripts/seek_benchmark.py --frames 400 --interval 10
    python scripts/seek_benchmark.py --width 480 --height 270 --seeks 500
"""

import argparse
import asyncio
import logging
import os
import sys
import time

import numpy as np

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from patchreel.cache import SnapshotCache
from patchreel.compositing import composite_range
from patchreel.ingest import FrameDescriptorStore
from patchreel.models import Disposal, FrameDescriptor, PatchRect
from patchreel.playback import SeekGate


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


def build_store(frames: int, width: int, height: int, seed: int) -> FrameDescriptorStore:
    """Synthetic asset with random patches, 1-bit alpha and mixed disposals."""
    rng = np.random.default_rng(seed)
    disposals = list(Disposal)
    descriptors = []
    
    for _ in range(frames):
        w = int(rng.integers(1, width + 1))
        h = int(rng.integers(1, height + 1))
        patch = rng.integers(0, 256, size=(h, w, 4), dtype=np.uint8)
        patch[..., 3] = rng.choice([0, 255], size=(h, w))
        descriptors.append(FrameDescriptor(
            patch=patch,
            rect=PatchRect(
                int(rng.integers(0, width - w + 1)),
                int(rng.integers(0, height - h + 1)),
                w,
                h,
            ),
            delay_ms=int(rng.integers(0, 100)),
            disposal=disposals[int(rng.integers(0, len(disposals)))],
        ))
    
    return FrameDescriptorStore(width, height, descriptors)


async def run_benchmark(
    store: FrameDescriptorStore,
    interval: int,
    seeks: int,
    burst: int,
    seed: int,
) -> dict:
    """
    Scrub through the asset and verify every delivered frame.
    
    Args:
        store: Asset to scrub
        interval: Checkpoint interval K
        seeks: Total seek requests
        burst: Seeks submitted back-to-back before awaiting (drag simulation)
        seed: RNG seed for the seek order
        
    Returns:
        Final metrics dict
    """
    logger.info("=" * 60)
    logger.info("Seek Benchmark")
    logger.info("=" * 60)
    logger.info(f"Asset: {store!r}")
    logger.info(f"Checkpoint interval: {interval}")
    logger.info(f"Seeks: {seeks} (bursts of {burst})")
    logger.info("=" * 60)
    
    reference = list(composite_range(store, store.canvas_width, store.canvas_height))
    
    cache = SnapshotCache(store, checkpoint_interval=interval)
    mismatches = []
    
    def verify(index: int, frame: np.ndarray) -> None:
        if not np.array_equal(frame, reference[index]):
            mismatches.append(index)
    
    gate = SeekGate(cache, on_frame=verify)
    rng = np.random.default_rng(seed)
    latencies = []
    
    start_time = time.perf_counter()
    try:
        for _ in range(0, seeks, burst):
            targets = rng.integers(0, len(store), size=burst)
            began = time.perf_counter()
            for target in targets:
                future = gate.submit(int(target))
            await future
            latencies.append((time.perf_counter() - began) * 1000.0)
    finally:
        await gate.stop()
    
    total_time = time.perf_counter() - start_time
    cache_metrics = cache.metrics()
    gate_metrics = gate.metrics()
    
    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Total runtime: {total_time:.2f} seconds")
    logger.info(f"Median burst latency: {np.median(latencies):.2f} ms")
    logger.info(f"Max burst latency: {np.max(latencies):.2f} ms")
    logger.info(f"Composites: {gate_metrics['completed']}")
    logger.info(f"Dropped seeks: {gate_metrics['dropped_count']}")
    logger.info(f"Replayed frames: {cache_metrics['replayed_frames']}")
    logger.info(f"Snapshots held: {cache_metrics['snapshots']}")
    logger.info(f"Mismatched frames: {len(mismatches)}")
    logger.info("=" * 60)
    
    if mismatches:
        logger.error(f"BENCHMARK FAILED - frames differ from reference: {mismatches[:10]}")
    else:
        logger.info("BENCHMARK PASSED - every delivered frame matches")
    
    return {
        "duration": total_time,
        "median_latency_ms": float(np.median(latencies)),
        "composites": gate_metrics["completed"],
        "dropped": gate_metrics["dropped_count"],
        "replayed_frames": cache_metrics["replayed_frames"],
        "mismatches": len(mismatches),
    }


def main():
    parser = argparse.ArgumentParser(
        description="Scrubbing benchmark for the snapshot cache"
    )
    parser.add_argument("--frames", type=int, default=300, help="Frames in the asset (default: 300)")
    parser.add_argument("--width", type=int, default=320, help="Canvas width (default: 320)")
    parser.add_argument("--height", type=int, default=240, help="Canvas height (default: 240)")
    parser.add_argument(
        "--interval",
        type=int,
        default=int(os.environ.get("PATCHREEL_CHECKPOINT_INTERVAL", 10)),
        help="Checkpoint interval K (default: 10)",
    )
    parser.add_argument("--seeks", type=int, default=200, help="Seek requests (default: 200)")
    parser.add_argument("--burst", type=int, default=4, help="Seeks per burst (default: 4)")
    parser.add_argument("--seed", type=int, default=0, help="RNG seed (default: 0)")
    
    args = parser.parse_args()
    
    store = build_store(args.frames, args.width, args.height, args.seed)
    result = asyncio.run(run_benchmark(
        store=store,
        interval=args.interval,
        seeks=args.seeks,
        burst=args.burst,
        seed=args.seed,
    ))
    
    sys.exit(0 if result["mismatches"] == 0 else 1)


if __name__ == "__main__":
    main()
