"""Tests for align / origin / size resolution, offset conversion and pose-preserving edits."""

import math

import numpy as np
import pytest
from numpy.testing import assert_allclose

from src.shared.constants import MIN_EXTENT
from src.shared.errors import CyclicParentError
from src.shared.geometry import Bounds
from src.modules.scene_graph import PerspectiveCamera, SceneNode
from src.modules.spatial_layout import (
    LayoutNode, LayoutSpec, LayoutSystem, compute_world_bounds, convert_offset,
    get_offset_for_position, get_position_for_offset, resolve_layout, set_parent,
    set_reference_frame,
)


def _box(name, size=(1, 1, 1), **kwargs):
    return SceneNode(name, geometry=Bounds.from_center_size((0, 0, 0), size), **kwargs)


def _about_z(angle):
    return np.array([0.0, 0.0, math.sin(angle / 2), math.cos(angle / 2)])


class TestResolveLayout:

    def setup_method(self):
        self.parent = _box("parent", size=(2, 4, 6))
        self.child = _box("child")
        self.parent.add(self.child)

    def test_passive_spec_is_pass_through(self):
        self.child.position = np.array([0.3, 0.2, 0.1])
        layout = LayoutNode(self.child)
        result = resolve_layout(self.child)
        assert_allclose(result.position, [0.3, 0.2, 0.1])
        assert_allclose(result.scale, np.ones(3))
        assert not layout.spec.resolved
        assert_allclose(self.child.update_matrix(), result.matrix)

    def test_align_only_set_axes(self):
        LayoutNode(self.child, LayoutSpec.of(align=(1, None, None)))
        result = resolve_layout(self.child)
        assert_allclose(result.position, [1, 0, 0])
        assert_allclose(result.scale, np.ones(3))

    def test_align_and_origin_put_edges_together(self):
        LayoutNode(self.child, LayoutSpec.of(align=(1, -1, None), origin=(1, -1, None)))
        resolve_layout(self.child)
        self.parent.update_world_matrix()
        child_bounds = compute_world_bounds(self.child)
        assert child_bounds.max[0] == pytest.approx(1.0)
        assert child_bounds.min[1] == pytest.approx(-2.0)

    def test_origin_offset_follows_orientation(self):
        self.child.quaternion = _about_z(math.pi / 2)
        spec = LayoutSpec.of(origin=(1, None, None))
        LayoutNode(self.child, spec)
        resolve_layout(self.child)
        # local +X edge of the child is world +Y after the quarter turn
        assert_allclose(spec.computed_origin_offset, [0, -0.5, 0], atol=1e-12)

    def test_size_sets_axis_and_averages_unset(self):
        spec = LayoutSpec.of(size=(1, 0.5, None))
        LayoutNode(self.child, spec)
        result = resolve_layout(self.child)
        assert_allclose(spec.computed_scale, [2, 2, 2])
        assert_allclose(result.scale, [2, 2, 2])

    def test_size_multiplies_node_scale(self):
        self.child.scale = np.array([1.0, 3.0, 1.0])
        LayoutNode(self.child, LayoutSpec.of(size=(0.5, None, None)))
        assert_allclose(resolve_layout(self.child).scale, [1, 3, 1])

    def test_zero_extent_is_clamped(self):
        flat = _box("flat", size=(0, 1, 1))
        self.parent.add(flat)
        spec = LayoutSpec.of(size=(1, None, None))
        LayoutNode(flat, spec)
        resolve_layout(flat)
        assert spec.computed_scale[0] == pytest.approx(2.0 / MIN_EXTENT)
        assert np.all(np.isfinite(spec.computed_scale))

    def test_empty_bounds_leave_transform_untouched(self):
        group = SceneNode("group")
        empty = SceneNode("empty", position=(1, 2, 3))
        group.add(empty)
        spec = LayoutSpec.of(align=(1, 1, 1), origin=(-1, -1, -1), size=(1, 1, 1))
        LayoutNode(empty, spec)
        result = resolve_layout(empty)
        assert_allclose(result.position, [1, 2, 3])
        assert_allclose(result.scale, np.ones(3))
        assert_allclose(spec.computed_align_offset, np.zeros(3))

    def test_reference_frame_anchor(self):
        root = SceneNode("root")
        tilted = _box("tilted", size=(2, 2, 2), quaternion=_about_z(math.pi / 4))
        node = _box("node", size=(0.1, 0.1, 0.1))
        root.add(tilted)
        tilted.add(node)
        node.reference_frame = root
        spec = LayoutSpec.of(align=(1, None, None))
        LayoutNode(node, spec)
        resolve_layout(node)
        # right edge of the tilted box in root space, expressed back in tilted space
        assert_allclose(spec.computed_align_offset, [1, -1, 0], atol=1e-9)


class TestCameraParent:

    def setup_method(self):
        self.camera = PerspectiveCamera(fov=90, aspect=2.0, near=0.1, far=10)
        self.panel = _box("panel")
        self.camera.add(self.panel)

    def test_align_z_is_depth(self):
        LayoutNode(self.panel, LayoutSpec.of(align=(1, 0, -2)))
        result = resolve_layout(self.panel)
        assert_allclose(result.position, [4, 0, -2], atol=1e-9)

    def test_depth_from_position_when_z_unset(self):
        self.panel.position = np.array([0.0, 0.0, -3.0])
        LayoutNode(self.panel, LayoutSpec.of(align=(1, None, None)))
        result = resolve_layout(self.panel)
        assert_allclose(result.position, [6, 0, -3], atol=1e-9)

    def test_depth_clamped_to_near(self):
        LayoutNode(self.panel, LayoutSpec.of(align=(0, 0, -0.01)))
        assert resolve_layout(self.panel).position[2] == pytest.approx(-0.1)

    def test_size_ignores_depth_axis(self):
        spec = LayoutSpec.of(align=(0, 0, -1), size=(0.5, None, 1))
        LayoutNode(self.panel, spec)
        resolve_layout(self.panel)
        # frustum slice at depth 1 is 4 wide
        assert_allclose(spec.computed_scale, [2, 2, 2], atol=1e-9)


class TestOffsetConversion:

    def setup_method(self):
        self.root = SceneNode("root")
        self.node = _box("node", size=(2, 4, 6), position=(1, 2, 3), quaternion=_about_z(0.3))
        self.root.add(self.node)

    @pytest.mark.parametrize("offset", [(0, 0, 0), (1, -1, 0.5), (-0.3, 0.7, -1)])
    def test_round_trip_own_space(self, offset):
        position = get_position_for_offset(self.node, None, offset)
        assert_allclose(get_offset_for_position(self.node, None, position), offset, atol=1e-9)

    @pytest.mark.parametrize("offset", [(0.25, 0.5, -0.75), (-1, 1, 1)])
    def test_round_trip_in_frame(self, offset):
        position = get_position_for_offset(self.node, self.root, offset)
        assert_allclose(get_offset_for_position(self.node, self.root, position), offset, atol=1e-9)

    def test_position_round_trip(self):
        position = np.array([0.4, -1.2, 2.0])
        offset = get_offset_for_position(self.node, self.root, position)
        assert_allclose(get_position_for_offset(self.node, self.root, offset), position, atol=1e-9)

    def test_camera_round_trip(self):
        camera = PerspectiveCamera(fov=60)
        offset = np.array([0.5, -0.25, -2.0])
        position = get_position_for_offset(camera, None, offset)
        assert position[2] == pytest.approx(-2.0)
        assert_allclose(get_offset_for_position(camera, None, position), offset, atol=1e-9)

    def test_empty_bounds_map_to_origin(self):
        empty = SceneNode("empty")
        assert_allclose(get_position_for_offset(empty, None, (1, 1, 1)), np.zeros(3))
        assert_allclose(get_offset_for_position(empty, None, (5, 5, 5)), np.zeros(3))

    def test_convert_offset_between_nodes(self):
        a = _box("a", size=(2, 2, 2))
        b = _box("b", size=(2, 2, 2), position=(2, 0, 0))
        self.root.add(a, b)
        assert_allclose(convert_offset((1, 0, 0), a, b), [-1, 0, 0], atol=1e-9)


class TestPosePreservingEdits:

    def setup_method(self):
        self.root = SceneNode("root")
        self.a = _box("a", size=(2, 2, 2), position=(1, 0, 0), quaternion=_about_z(0.5))
        self.b = _box("b", size=(3, 1, 1), position=(-2, 1, 4), quaternion=_about_z(-1.1),
                      scale=(2, 2, 2))
        self.node = _box("node", size=(0.5, 0.5, 0.5), position=(0.2, 0.3, 0.1))
        self.root.add(self.a, self.b)
        self.a.add(self.node)

    def _world(self):
        self.node.update_world_matrix(update_parents=True, update_children=False)
        return self.node.matrix_world.copy()

    def test_set_parent_without_layout(self):
        before = self._world()
        set_parent(self.node, self.b)
        assert self.node.parent is self.b
        assert_allclose(self._world(), before, atol=1e-9)

    def test_set_parent_with_active_layout(self):
        LayoutNode(self.node, LayoutSpec.of(align=(1, None, None), origin=(-1, None, None),
                                            size=(0.25, None, None)))
        resolve_layout(self.node)
        before = self._world()
        set_parent(self.node, self.b)
        assert_allclose(self._world(), before, atol=1e-9)

    def test_set_parent_rejects_cycles(self):
        with pytest.raises(CyclicParentError):
            set_parent(self.a, self.node)

    def test_set_reference_frame_keeps_pose(self):
        LayoutNode(self.node, LayoutSpec.of(align=(1, 1, None)))
        resolve_layout(self.node)
        before = self._world()
        set_reference_frame(self.node, self.root)
        assert self.node.reference_frame is self.root
        assert_allclose(self._world(), before, atol=1e-9)


class TestLayoutSystem:

    def setup_method(self):
        self.root = _box("root", size=(4, 4, 4))
        self.child = _box("child")
        self.grandchild = _box("grandchild", size=(0.2, 0.2, 0.2))
        self.root.add(self.child)
        self.child.add(self.grandchild)
        LayoutNode(self.child, LayoutSpec.of(align=(1, 1, None), origin=(-1, -1, None)))
        LayoutNode(self.grandchild, LayoutSpec.of(align=(-1, None, None)))
        self.system = LayoutSystem(self.root)

    def test_update_places_parents_before_children(self):
        assert self.system.update() == 2
        assert_allclose(self.child.get_world_position(), [2.5, 2.5, 0])
        assert_allclose(self.grandchild.get_world_position(), [2.0, 2.5, 0])
        assert self.system.frame_count == 1

    def test_repeated_updates_are_stable(self):
        self.system.update()
        first = self.grandchild.matrix_world.copy()
        self.system.update()
        assert_allclose(self.grandchild.matrix_world, first)

    def test_child_layout_does_not_inflate_parent_measurement(self):
        self.system.update()
        assert self.system.cache.get(self.root).max[0] == pytest.approx(2.0)
