"""
Hysteresis + debounce classification of a continuous metric into named zones.

A zone list alternates ``Zone`` entries and numeric pivots::

    AdaptiveProperty(metric, [Zone("near"), 1.0, Zone("mid", threshold=0.1), 3.0, Zone("far")])

Each pivot is a boundary between the zone below and the zone above it.  To
cross a boundary the metric must overshoot the pivot by the larger of the two
neighbouring zones' thresholds (Schmitt trigger), and the new zone must then
stay the candidate for at least its ``delay_ms`` before it is committed.
"""
from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Union

from src.shared.errors import ConfigurationError, InvalidMetricError

log = logging.getLogger(__name__)


@dataclass(eq=False)
class Zone:
    state: str
    threshold: Optional[float] = None   # falls back to the property default
    delay_ms: Optional[float] = None    # falls back to the property default

    def __repr__(self) -> str:
        return f"Zone({self.state!r})"


ZoneList = Sequence[Union[Zone, float]]


def _is_real(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def _validate_zones(zones: ZoneList) -> tuple:
    if len(zones) == 0 or len(zones) % 2 == 0:
        raise ConfigurationError(
            f"zone list must alternate Zone/pivot and start and end with a Zone, got {len(zones)} entries"
        )
    states: List[Zone] = []
    pivots: List[float] = []
    for i, entry in enumerate(zones):
        if i % 2 == 0:
            if not isinstance(entry, Zone):
                raise ConfigurationError(f"entry {i} must be a Zone, got {entry!r}")
            if any(entry is seen for seen in states):
                raise ConfigurationError(f"entry {i}: zone {entry.state!r} appears more than once")
            for label, value in (("threshold", entry.threshold), ("delay_ms", entry.delay_ms)):
                if value is not None and (not _is_real(value) or value < 0):
                    raise ConfigurationError(f"zone {entry.state!r}: {label} must be >= 0, got {value!r}")
            states.append(entry)
        else:
            if not _is_real(entry) or not math.isfinite(entry):
                raise ConfigurationError(f"entry {i} must be a finite pivot, got {entry!r}")
            if pivots and entry <= pivots[-1]:
                raise ConfigurationError(
                    f"pivots must be strictly increasing, got {pivots[-1]} then {entry}"
                )
            pivots.append(float(entry))
    return states, pivots


class AdaptiveProperty:
    """Discrete state derived from ``metric()`` once per ``update(delta_time)``."""

    def __init__(self, metric: Callable[[], float], zones: ZoneList,
                 threshold: float = 0.0, delay_ms: float = 0.0, name: Optional[str] = None):
        if threshold < 0 or delay_ms < 0:
            raise ConfigurationError(
                f"default threshold and delay_ms must be >= 0, got {threshold}, {delay_ms}"
            )
        self._metric = metric
        self._zones, self._pivots = _validate_zones(zones)
        self.threshold = threshold
        self.delay_ms = delay_ms
        self.name = name or getattr(metric, "__name__", "adaptive")

        self.metric_value: Optional[float] = None
        self.current_zone: Optional[Zone] = None
        self.previous_zone: Optional[Zone] = None
        self.pending_zone: Optional[Zone] = None
        self.pending_elapsed_ms = 0.0

    @property
    def zones(self) -> List[Zone]:
        return list(self._zones)

    @property
    def pivots(self) -> List[float]:
        return list(self._pivots)

    def threshold_for(self, zone: Zone) -> float:
        return self.threshold if zone.threshold is None else zone.threshold

    def delay_for(self, zone: Zone) -> float:
        return self.delay_ms if zone.delay_ms is None else zone.delay_ms

    def _margin(self, boundary: int) -> float:
        return max(self.threshold_for(self._zones[boundary]),
                   self.threshold_for(self._zones[boundary + 1]))

    def _raw_index(self, value: float) -> int:
        index = 0
        while index < len(self._pivots) and value >= self._pivots[index]:
            index += 1
        return index

    def _candidate_index(self, value: float) -> int:
        start = index = self._zones.index(self.current_zone)
        while index < len(self._pivots) and value >= self._pivots[index] + self._margin(index):
            index += 1
        if index != start:
            return index
        while index > 0 and value < self._pivots[index - 1] - self._margin(index - 1):
            index -= 1
        return index

    def _read_metric(self) -> float:
        value = self._metric()
        if not _is_real(value):
            raise InvalidMetricError(f"[{self.name}] metric must return a real number, got {value!r}")
        value = float(value)
        if math.isnan(value):
            raise InvalidMetricError(f"[{self.name}] metric returned NaN")
        return value

    def _commit(self, zone: Zone) -> None:
        log.debug("[adaptive] %s: %s -> %s (metric=%.4g)",
                  self.name, self.state, zone.state, self.metric_value)
        self.current_zone = zone
        self.pending_zone = None
        self.pending_elapsed_ms = 0.0

    def update(self, delta_time: float) -> None:
        """Sample the metric and advance the state machine by ``delta_time`` seconds."""
        if delta_time < 0:
            raise ValueError(f"delta_time must be >= 0, got {delta_time}")
        value = self.metric_value = self._read_metric()
        self.previous_zone = self.current_zone

        if self.current_zone is None:
            self._commit(self._zones[self._raw_index(value)])
            return

        candidate = self._zones[self._candidate_index(value)]
        if candidate is self.current_zone:
            self.pending_zone = None
            self.pending_elapsed_ms = 0.0
            return
        if candidate is not self.pending_zone:
            self.pending_zone = candidate
            self.pending_elapsed_ms = 0.0
        else:
            self.pending_elapsed_ms += delta_time * 1000.0
        if self.pending_elapsed_ms >= self.delay_for(candidate):
            self._commit(candidate)

    # ── queries ──────────────────────────────────────────────────

    @property
    def state(self) -> Optional[str]:
        return self.current_zone.state if self.current_zone is not None else None

    def is_(self, state: str) -> bool:
        return self.current_zone is not None and self.current_zone.state == state

    def was(self, state: str) -> bool:
        return self.previous_zone is not None and self.previous_zone.state == state

    def changing(self) -> bool:
        return self.current_zone is not self.previous_zone

    def changing_to(self, state: str) -> bool:
        return self.changing() and self.is_(state)

    def changing_from(self, state: str) -> bool:
        return self.changing() and self.was(state)

    def __repr__(self) -> str:
        return f"AdaptiveProperty({self.name!r}, state={self.state!r})"


class CompositeState:
    """Conjunctive queries over the adaptive properties held by ``owner``.

    ``owner`` is either a mapping of names to properties or any object whose
    attributes include ``AdaptiveProperty`` instances.
    """

    def __init__(self, owner):
        self.owner = owner

    @property
    def properties(self) -> Dict[str, AdaptiveProperty]:
        items = self.owner.items() if isinstance(self.owner, Mapping) else vars(self.owner).items()
        return {key: value for key, value in items if isinstance(value, AdaptiveProperty)}

    def _lookup(self, key: str) -> AdaptiveProperty:
        prop = self.properties.get(key)
        if prop is None:
            raise KeyError(f"no adaptive property named {key!r}")
        return prop

    def update(self, delta_time: float) -> None:
        for prop in self.properties.values():
            prop.update(delta_time)

    def is_(self, states: Mapping[str, str]) -> bool:
        return all(self._lookup(key).is_(state) for key, state in states.items())

    def changing_to(self, states: Mapping[str, str]) -> bool:
        props = [(self._lookup(key), state) for key, state in states.items()]
        if not all(prop.is_(state) for prop, state in props):
            return False
        return any(prop.changing() for prop, _ in props)

    def changing_from(self, states: Mapping[str, str]) -> bool:
        props = [(self._lookup(key), state) for key, state in states.items()]
        if not all(prop.was(state) for prop, state in props):
            return False
        return any(prop.changing() for prop, _ in props)
