"""Per-frame timing and heap-allocation probes for the frame loop.

Two tools:

1. ``phase_timer(label, timings)``: context manager, accumulates wall time
   of a block into ``timings[label]`` (seconds).  The frame loop wraps each
   of its phases in one so slow phases show up in ``FrameLoop.timings``.

2. ``tracemalloc_snapshot(label)``: context manager, logs the net heap delta
   of a block and its top allocation sites.  Used by ``main.py
   --profile-memory`` to check that the steady-state frame does not allocate
   without bound.

Usage::

    timings = {}
    with phase_timer("layout", timings):
        system.update()

    with tracemalloc_snapshot("300 frames"):
        loop.run(300)
"""
from __future__ import annotations

import contextlib
import logging
import time
import tracemalloc
from typing import Dict, Generator

log = logging.getLogger(__name__)


@contextlib.contextmanager
def phase_timer(label: str, timings: Dict[str, float]) -> Generator[None, None, None]:
    start = time.perf_counter()
    try:
        yield
    finally:
        timings[label] = timings.get(label, 0.0) + (time.perf_counter() - start)


@contextlib.contextmanager
def tracemalloc_snapshot(label: str, top_n: int = 5) -> Generator[None, None, None]:
    """Log the heap delta around a block; top sites go to DEBUG.

    Safe to nest; only the outermost call stops tracing.
    """
    already_tracing = tracemalloc.is_tracing()
    if not already_tracing:
        tracemalloc.start(10)

    before = tracemalloc.take_snapshot()
    try:
        yield
    finally:
        after = tracemalloc.take_snapshot()
        mem_before = sum(s.size for s in before.statistics("lineno"))
        mem_after = sum(s.size for s in after.statistics("lineno"))
        log.info("[mem] %s: %+d KB  (%.2f MB -> %.2f MB)",
                 label, (mem_after - mem_before) // 1024,
                 mem_before / 1024 / 1024, mem_after / 1024 / 1024)

        for rank, stat in enumerate(after.compare_to(before, "lineno")[:top_n], 1):
            if stat.size_diff == 0:
                continue
            site = str(stat.traceback[0]) if stat.traceback else "<unknown>"
            log.debug("[mem]  #%-2d %+8.1f KB  count %+d  |  %s",
                      rank, stat.size_diff / 1024, stat.count_diff, site)

        if not already_tracing:
            tracemalloc.stop()
