"""Tests for the per-frame driver."""

import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from src.frame_loop import FrameLoop, FrameLoopConfig
from src.shared.errors import InvalidMetricError
from src.shared.geometry import Bounds
from src.modules.scene_graph import PerspectiveCamera, SceneNode
from src.modules.spatial_layout import LayoutNode, LayoutSpec
from src.modules.spatial_metrics import KinematicMetrics
from src.modules.adaptive_state import AdaptiveProperty, CompositeState, Zone


def _box(name, size=(1, 1, 1), **kwargs):
    return SceneNode(name, geometry=Bounds.from_center_size((0, 0, 0), size), **kwargs)


class TestFrameLoopConfig:

    def test_defaults(self):
        config = FrameLoopConfig()
        assert config.fps == 60
        assert config.lerp_rate == 8.0
        assert not config.skip_frame_on_error

    def test_invalid_fps(self):
        with pytest.raises(ValueError, match="fps"):
            FrameLoop(SceneNode("root"), FrameLoopConfig(fps=0))


class TestStepping:

    def setup_method(self):
        self.root = SceneNode("root")
        self.loop = FrameLoop(self.root, FrameLoopConfig(fps=50, lerp_rate=10.0))

    def test_lerp_factor_is_clamped(self):
        assert self.loop.lerp_factor(0.05) == pytest.approx(0.5)
        assert self.loop.lerp_factor(1.0) == 1.0
        assert self.loop.lerp_factor(0.0) == 0.0

    def test_default_step_uses_fps(self):
        assert self.loop.run(5) == 5
        assert self.loop.frame == 5
        assert self.loop.elapsed == pytest.approx(0.1)

    def test_long_frames_are_clamped(self):
        self.loop.step(5.0)
        assert self.loop.elapsed == pytest.approx(0.1)

    def test_negative_delta_time(self):
        with pytest.raises(ValueError, match="delta_time"):
            self.loop.step(-0.01)

    def test_phase_order(self):
        calls = []
        feed = lambda: calls.append("adaptive") or 0.0
        self.loop.add_property(AdaptiveProperty(feed, [Zone("only")]))

        @self.loop.add_behaviour
        def behaviour(dt):
            calls.append("behaviour")

        self.loop.step(0.02)
        self.loop.step(0.02)
        assert calls == ["adaptive", "behaviour", "adaptive", "behaviour"]

    def test_behaviour_sees_committed_state(self):
        feed = {"value": 0.0}
        prop = self.loop.add_property(AdaptiveProperty(lambda: feed["value"],
                                                       [Zone("off"), 0.5, Zone("on")]))
        seen = []
        self.loop.add_behaviour(lambda dt: seen.append(prop.changing_to("on")))
        self.loop.step(0.02)
        feed["value"] = 1.0
        self.loop.step(0.02)
        self.loop.step(0.02)
        assert seen == [False, True, False]

    def test_composite_states_are_updated(self):
        owner = {"a": AdaptiveProperty(lambda: 1.0, [Zone("x")])}
        self.loop.add_property(CompositeState(owner))
        self.loop.step(0.02)
        assert owner["a"].is_("x")

    def test_kinematics_updated_before_properties(self):
        mover = SceneNode("mover")
        anchor = SceneNode("anchor")
        self.root.add(mover, anchor)
        kinematics = self.loop.add_kinematics(KinematicMetrics(anchor, mover))
        speed = self.loop.add_property(AdaptiveProperty(
            lambda: kinematics.linear_speed, [Zone("still"), 0.1, Zone("moving")]))

        @self.loop.add_behaviour
        def walk(dt):
            mover.position = mover.position + np.array([dt, 0.0, 0.0])

        self.loop.step(0.02)
        self.loop.step(0.02)
        assert kinematics.linear_speed > 0.1
        assert speed.is_("moving")

    def test_timings_recorded(self):
        self.loop.step()
        assert set(self.loop.timings) == {
            "kinematics", "adaptive", "behaviours", "transitions", "layout", "world",
        }


class TestErrorHandling:

    def _loop(self, skip):
        loop = FrameLoop(SceneNode("root"), FrameLoopConfig(skip_frame_on_error=skip))
        loop.add_property(AdaptiveProperty(lambda: math.nan, [Zone("a")]))
        return loop

    def test_errors_propagate_by_default(self):
        loop = self._loop(skip=False)
        with pytest.raises(InvalidMetricError):
            loop.step()

    def test_errors_skip_frame_when_configured(self):
        loop = self._loop(skip=True)
        assert loop.step() is False
        assert loop.run(3) == 0
        assert loop.skipped_frames == 4
        assert loop.frame == 0


class TestTransitionsAndLayout:

    def setup_method(self):
        self.scene = SceneNode("scene")
        self.camera = PerspectiveCamera(fov=60, position=(0, 0, 3))
        self.anchor = _box("anchor", size=(1, 1, 1))
        self.panel = _box("panel", size=(0.4, 0.2, 0.01))
        self.scene.add(self.camera, self.anchor)
        self.anchor.add(self.panel)
        self.loop = FrameLoop(self.scene, FrameLoopConfig(fps=60, lerp_rate=8.0))

    def test_reparent_is_seamless_then_converges(self):
        self.loop.step()
        before = self.panel.get_world_position()

        target = self.loop.add_transition(self.panel)
        target.parent = self.camera
        target.align.set(0, 0, -1)
        self.loop.step()
        assert self.panel.parent is self.camera
        assert_allclose(self.panel.get_world_position(), before, atol=1e-9)

        self.loop.run(300)
        # centred one metre in front of the camera
        assert_allclose(self.panel.get_world_position(), [0, 0, 2], atol=1e-6)

    def test_layout_system_runs_each_frame(self):
        LayoutNode(self.panel, LayoutSpec.of(align=(1, 1, None), origin=(-1, -1, None)))
        self.loop.step()
        assert self.loop.layout.frame_count == 1
        assert_allclose(self.panel.get_world_position(), [0.7, 0.6, 0], atol=1e-9)
