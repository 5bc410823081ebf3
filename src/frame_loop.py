"""
#WHERE
    Driver of the whole engine, called by main.py and the tests.

#WHAT
    Per-frame update in a fixed order: kinematics → adaptive properties →
    behaviour callbacks → layout transitions → two-phase layout → world
    matrices.  Behaviours read committed adaptive states and rewrite
    LayoutTargets; transitions then ease nodes toward those targets.

#INPUT
    Scene root, FrameLoopConfig, registered metrics / properties /
    behaviours / (node, LayoutTarget) pairs, frame delta time.

#OUTPUT
    Updated scene graph (local + world matrices), per-phase timings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

from src.shared.constants import DEFAULT_FPS, DEFAULT_LERP_RATE, MAX_DELTA_TIME
from src.shared.errors import SpatialEngineError
from src.shared.profiling import phase_timer
from src.modules.scene_graph import SceneNode
from src.modules.spatial_layout import LayoutSystem, LayoutTarget, LayoutTransitioner
from src.modules.spatial_metrics import KinematicMetrics
from src.modules.adaptive_state import AdaptiveProperty, CompositeState

log = logging.getLogger(__name__)

Behaviour = Callable[[float], None]


@dataclass
class FrameLoopConfig:
    fps: int = DEFAULT_FPS
    lerp_rate: float = DEFAULT_LERP_RATE       # per second; frame lerp = clamp(dt * rate, 0, 1)
    max_delta_time: float = MAX_DELTA_TIME     # longer frames (tab switch, breakpoint) are clamped
    skip_frame_on_error: bool = False          # log and drop frames that raise SpatialEngineError


class FrameLoop:
    """Owns the per-frame update order for one scene."""

    def __init__(self, root: SceneNode, config: FrameLoopConfig | None = None) -> None:
        self.config = config or FrameLoopConfig()
        if self.config.fps <= 0:
            raise ValueError(f"fps must be positive, got {self.config.fps}")
        self.root = root
        self.layout = LayoutSystem(root)
        self.transitioner = LayoutTransitioner()

        self._kinematics: List[KinematicMetrics] = []
        self._properties: List[Union[AdaptiveProperty, CompositeState]] = []
        self._behaviours: List[Behaviour] = []
        self._transitions: List[Tuple[SceneNode, LayoutTarget]] = []

        self.frame = 0
        self.elapsed = 0.0
        self.skipped_frames = 0
        self.timings: Dict[str, float] = {}
        log.info("[loop] ready: %d fps, lerp rate %.1f/s, root %r",
                 self.config.fps, self.config.lerp_rate, root)

    # ── registration ─────────────────────────────────────────────

    def add_kinematics(self, kinematics: KinematicMetrics) -> KinematicMetrics:
        self._kinematics.append(kinematics)
        return kinematics

    def add_property(self, prop: Union[AdaptiveProperty, CompositeState]):
        self._properties.append(prop)
        return prop

    def add_behaviour(self, behaviour: Behaviour) -> Behaviour:
        """Register ``behaviour(delta_time)``; usable as a decorator."""
        self._behaviours.append(behaviour)
        return behaviour

    def add_transition(self, node: SceneNode, target: Optional[LayoutTarget] = None) -> LayoutTarget:
        target = target if target is not None else LayoutTarget()
        self._transitions.append((node, target))
        return target

    # ── stepping ─────────────────────────────────────────────────

    def lerp_factor(self, delta_time: float) -> float:
        return min(max(delta_time * self.config.lerp_rate, 0.0), 1.0)

    def step(self, delta_time: float | None = None) -> bool:
        """Advance one frame.  Returns False when the frame was skipped."""
        dt = 1.0 / self.config.fps if delta_time is None else delta_time
        if dt < 0:
            raise ValueError(f"delta_time must be >= 0, got {dt}")
        dt = min(dt, self.config.max_delta_time)

        try:
            self._step(dt)
        except SpatialEngineError as exc:
            if not self.config.skip_frame_on_error:
                raise
            self.skipped_frames += 1
            log.warning("[loop] frame %d skipped: %s", self.frame, exc)
            return False

        self.frame += 1
        self.elapsed += dt
        return True

    def _step(self, dt: float) -> None:
        with phase_timer("kinematics", self.timings):
            if dt > 0:
                for kinematics in self._kinematics:
                    kinematics.update(dt)

        with phase_timer("adaptive", self.timings):
            for prop in self._properties:
                prop.update(dt)

        with phase_timer("behaviours", self.timings):
            for behaviour in self._behaviours:
                behaviour(dt)

        with phase_timer("transitions", self.timings):
            lerp = self.lerp_factor(dt)
            for node, target in self._transitions:
                self.transitioner.update(node, target, lerp)

        with phase_timer("layout", self.timings):
            self.layout.update()

        with phase_timer("world", self.timings):
            self.root.update_world_matrix(update_parents=False, update_children=True)

    def run(self, frames: int) -> int:
        """Step ``frames`` times at the configured fps; returns frames completed."""
        completed = 0
        for _ in range(frames):
            if self.step():
                completed += 1
        return completed
