"""
#WHERE
    Used by frame_loop.py (per-frame updates), main.py (attach-mode switch)
    and the tests.

#WHAT
    Adaptive State: classify continuous metrics (visual size, angle, speed)
    into named zones with hysteresis and time-based debounce, plus
    conjunctive queries over several such properties.

#INPUT
    Metric callables, zone lists (Zone, pivot, Zone, ...), frame delta time.

#OUTPUT
    Committed zone state and change queries (is_, was, changing_to, ...).
"""

from .property import AdaptiveProperty, CompositeState, Zone

__all__ = ["AdaptiveProperty", "CompositeState", "Zone"]
