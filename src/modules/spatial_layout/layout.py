"""
Declarative placement: align / origin / size directives → local transforms.

    align   normalized [-1, 1] point inside the *parent's* bounds (the anchor)
    origin  normalized [-1, 1] point inside the node's *own* bounds, pulled
            onto the anchor
    size    fraction of the parent's extent the node should occupy per axis

Each axis of each directive may be unset (``None``).  Unset align/origin axes
contribute no offset; unset size axes take the mean scale of the set ones.
A spec with every axis unset is passive and leaves the node untouched.

Layout is an explicit step: the driver (``LayoutSystem``) measures bounds
bottom-up and then calls ``resolve_layout`` top-down, parents before
children.  Results are written into the spec's computed fields, which
``SceneNode.update_matrix`` folds into the node's local matrix.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

import numpy as np

from src.modules.scene_graph.node import SceneNode
from src.shared.constants import DEFAULT_CAMERA_DEPTH, MIN_EXTENT
from src.shared.errors import CyclicParentError
from src.shared.geometry import (
    Bounds, PartialVector3, compose, decompose, rotate, transform_point,
)
from .bounds import BoundsCache, camera_frustum_bounds, compute_bounds, relative_matrix
from .reference_frame import resolve_frame

log = logging.getLogger(__name__)

OffsetLike = Union[PartialVector3, np.ndarray, Tuple[float, float, float]]


def _partial(value) -> PartialVector3:
    if value is None:
        return PartialVector3()
    if isinstance(value, PartialVector3):
        return value.copy()
    return PartialVector3(*value)


@dataclass(eq=False)
class LayoutSpec:
    align: PartialVector3 = field(default_factory=PartialVector3)
    origin: PartialVector3 = field(default_factory=PartialVector3)
    size: PartialVector3 = field(default_factory=PartialVector3)

    computed_align_offset: np.ndarray = field(default_factory=lambda: np.zeros(3))
    computed_origin_offset: np.ndarray = field(default_factory=lambda: np.zeros(3))
    computed_scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    resolved: bool = False

    @classmethod
    def of(cls, align=None, origin=None, size=None) -> "LayoutSpec":
        """Build from tuples; ``None`` or NaN entries mark unset axes."""
        return cls(_partial(align), _partial(origin), _partial(size))

    @property
    def is_passive(self) -> bool:
        return self.align.is_unset and self.origin.is_unset and self.size.is_unset

    @property
    def definedness(self) -> Tuple[bool, ...]:
        return self.align.definedness + self.origin.definedness + self.size.definedness

    def reset_computed(self) -> None:
        self.computed_align_offset = np.zeros(3)
        self.computed_origin_offset = np.zeros(3)
        self.computed_scale = np.ones(3)
        self.resolved = False


@dataclass(eq=False)
class LocalTransform:
    position: np.ndarray
    quaternion: np.ndarray
    scale: np.ndarray

    @property
    def matrix(self) -> np.ndarray:
        return compose(self.position, self.quaternion, self.scale)


# ── Per-step helpers ──────────────────────────────────────────────────────────

def _camera_depth(camera: SceneNode, node: SceneNode, align: PartialVector3) -> float:
    if align.z is not None:
        depth = -align.z
    elif node.position[2] < 0.0:
        depth = -node.position[2]
    else:
        depth = DEFAULT_CAMERA_DEPTH
    return max(depth, camera.near)


def _size_scale(parent_bounds: Bounds, own_bounds: Bounds, size: PartialVector3,
                ignore_z: bool = False) -> np.ndarray:
    scale = np.ones(3)
    if parent_bounds.is_empty or own_bounds.is_empty:
        return scale
    mask = size.mask
    if ignore_z:
        mask[2] = False
    if not mask.any():
        return scale
    raw = parent_bounds.size * size.values() / np.maximum(own_bounds.size, MIN_EXTENT)
    raw = np.maximum(raw, MIN_EXTENT)
    scale[mask] = raw[mask]
    scale[~mask] = raw[mask].mean()
    return scale


def _align_offset(parent: SceneNode, frame: Optional[SceneNode], parent_bounds: Bounds,
                  align: PartialVector3, camera_depth: Optional[float]) -> np.ndarray:
    if parent_bounds.is_empty or align.is_unset:
        return np.zeros(3)
    mask = align.mask
    point = parent_bounds.center + align.values() * 0.5 * parent_bounds.size
    if camera_depth is not None:
        anchor = np.where(mask, point, 0.0)
        if mask[2]:
            anchor[2] = -camera_depth
        return anchor
    if frame is None or frame is parent:
        return np.where(mask, point, 0.0)
    to_frame = relative_matrix(parent, frame)
    anchor_in_frame = np.where(mask, point, to_frame[:3, 3])
    return transform_point(np.linalg.inv(to_frame), anchor_in_frame)


def _origin_offset(node: SceneNode, own_bounds: Bounds, origin: PartialVector3,
                   computed_scale: np.ndarray) -> np.ndarray:
    if own_bounds.is_empty or origin.is_unset:
        return np.zeros(3)
    point = own_bounds.center + origin.values() * 0.5 * own_bounds.size
    point = np.where(origin.mask, point, 0.0)
    return -rotate(node.quaternion, point * node.scale * computed_scale)


# ── Layout resolution ─────────────────────────────────────────────────────────

def resolve_layout(node: SceneNode, spec: Optional[LayoutSpec] = None,
                   cache: Optional[BoundsCache] = None) -> LocalTransform:
    """Resolve ``spec`` (default: the node's attached layout) for ``node``.

    Writes the spec's computed fields and returns the resulting local
    transform.  Parent bounds must already reflect this frame's placement of
    the parent; see ``LayoutSystem`` for the required traversal order.
    """
    if spec is None and node.layout is not None:
        spec = node.layout.spec
    if spec is None or spec.is_passive:
        if spec is not None:
            spec.reset_computed()
        return LocalTransform(node.position.copy(), node.quaternion.copy(), node.scale.copy())

    measure = cache.get if cache is not None else compute_bounds
    parent = node.parent
    own_bounds = measure(node, None)

    depth = None
    frame = None
    if parent is not None and parent.is_camera:
        depth = _camera_depth(parent, node, spec.align)
        parent_bounds = camera_frustum_bounds(parent, depth)
    else:
        frame = resolve_frame(node)
        parent_bounds = measure(parent, frame)

    computed_scale = _size_scale(parent_bounds, own_bounds, spec.size, ignore_z=depth is not None)
    spec.computed_scale = computed_scale
    spec.computed_align_offset = _align_offset(parent, frame, parent_bounds, spec.align, depth)
    spec.computed_origin_offset = _origin_offset(node, own_bounds, spec.origin, computed_scale)
    spec.resolved = True

    return LocalTransform(
        node.position + spec.computed_align_offset + spec.computed_origin_offset,
        node.quaternion.copy(),
        node.scale * computed_scale,
    )


# ── Offset ↔ position conversion ──────────────────────────────────────────────

def _as_offset(offset: OffsetLike) -> np.ndarray:
    if isinstance(offset, PartialVector3):
        return offset.values()
    return np.asarray(offset, dtype=float)


def _normalize(delta: np.ndarray, size: np.ndarray) -> np.ndarray:
    out = np.zeros(3)
    nonzero = size > 0.0
    out[nonzero] = 2.0 * delta[nonzero] / size[nonzero]
    return out


def get_position_for_offset(node: Optional[SceneNode], frame: Optional[SceneNode],
                            offset: OffsetLike) -> np.ndarray:
    """Point in ``node``-local space selected by a normalized offset.

    For cameras the offset's Z is a signed depth (negative = in front).
    Empty bounds map every offset to the origin.
    """
    if node is None:
        return np.zeros(3)
    offset = _as_offset(offset)
    if node.is_camera:
        depth = -offset[2]
        if depth <= 0.0:
            return np.zeros(3)
        bounds = camera_frustum_bounds(node, depth)
        point = bounds.center + offset * 0.5 * bounds.size
        point[2] = -depth
        return point
    bounds = compute_bounds(node, frame)
    if bounds.is_empty:
        return np.zeros(3)
    point = bounds.center + offset * 0.5 * bounds.size
    if frame is not None and frame is not node:
        point = transform_point(np.linalg.inv(relative_matrix(node, frame)), point)
    return point


def get_offset_for_position(node: Optional[SceneNode], frame: Optional[SceneNode],
                            position) -> np.ndarray:
    """Inverse of :func:`get_position_for_offset`."""
    if node is None:
        return np.zeros(3)
    position = np.asarray(position, dtype=float)
    if node.is_camera:
        depth = -position[2]
        if depth <= 0.0:
            return np.zeros(3)
        bounds = camera_frustum_bounds(node, depth)
        offset = _normalize(position - bounds.center, bounds.size)
        offset[2] = -depth
        return offset
    bounds = compute_bounds(node, frame)
    if bounds.is_empty:
        return np.zeros(3)
    if frame is not None and frame is not node:
        position = transform_point(relative_matrix(node, frame), position)
    return _normalize(position - bounds.center, bounds.size)


def convert_offset(offset: OffsetLike, start: SceneNode, end: SceneNode) -> np.ndarray:
    """Re-express a normalized offset measured on ``start`` as one on ``end``."""
    point = get_position_for_offset(start, resolve_frame(start), offset)
    start.update_world_matrix(update_parents=True, update_children=False)
    end.update_world_matrix(update_parents=True, update_children=False)
    local = end.world_to_local(start.local_to_world(point))
    return get_offset_for_position(end, resolve_frame(end), local)


# ── Pose-preserving structural edits ─────────────────────────────────────────

def preserve_world_pose(node: SceneNode, world_matrix: np.ndarray) -> None:
    """Back-solve the node's TRS so its world matrix equals ``world_matrix``.

    Takes the current layout directives into account: the layout scale is
    divided out of the node's own scale and the align/origin offsets are
    subtracted from its position.  The parent's world matrix is refreshed
    first so a stale parent cannot skew the result.
    """
    parent = node.parent
    if parent is not None:
        parent.update_world_matrix(update_parents=True, update_children=False)
        local = np.linalg.inv(parent.matrix_world) @ world_matrix
    else:
        local = world_matrix
    position, quaternion, total_scale = decompose(local)
    node.position, node.quaternion, node.scale = position, quaternion, total_scale

    spec = node.layout.spec if node.layout is not None else None
    if spec is not None and not spec.is_passive:
        resolve_layout(node, spec)
        node.scale = total_scale / spec.computed_scale
        resolve_layout(node, spec)
        node.position = position - spec.computed_align_offset - spec.computed_origin_offset
    elif spec is not None:
        spec.reset_computed()
    node.update_world_matrix(update_parents=False, update_children=True)


def _reanchor(node: SceneNode, spec: LayoutSpec) -> None:
    """Rewrite set align/origin axes so the anchor and origin sit at local zero."""
    frame = resolve_frame(node)
    align = get_offset_for_position(node.parent, frame, np.zeros(3))
    origin = get_offset_for_position(node, None, np.zeros(3))
    for axis in range(3):
        if spec.align[axis] is not None:
            spec.align[axis] = align[axis]
        if spec.origin[axis] is not None:
            spec.origin[axis] = origin[axis]


def set_parent(child: SceneNode, parent: SceneNode) -> None:
    """Move ``child`` under ``parent`` without changing its world pose."""
    if child.parent is parent:
        return
    if parent is child or child.is_ancestor_of(parent):
        raise CyclicParentError(f"cannot parent '{child.name}' under its own descendant '{parent.name}'")
    child.update_world_matrix(update_parents=True, update_children=False)
    world = child.matrix_world.copy()
    if child.parent is not None:
        child.parent.remove(child)
    parent.add(child)
    if child.layout is not None and child.layout.is_active:
        _reanchor(child, child.layout.spec)
    preserve_world_pose(child, world)
    log.debug("[layout] reparented %r under %r", child, parent)


def set_reference_frame(node: SceneNode, frame) -> None:
    """Change the node's reference-frame override without moving it."""
    if node.reference_frame is frame:
        return
    node.update_world_matrix(update_parents=True, update_children=False)
    world = node.matrix_world.copy()
    node.reference_frame = frame
    if node.layout is not None and node.layout.is_active:
        _reanchor(node, node.layout.spec)
    preserve_world_pose(node, world)


class LayoutNode:
    """Opt-in layout state for one scene node (attached as ``node.layout``)."""

    def __init__(self, node: SceneNode, spec: Optional[LayoutSpec] = None):
        if node.layout is not None:
            log.debug("[layout] replacing existing layout on %r", node)
        self.node = node
        self.spec = spec if spec is not None else LayoutSpec()
        node.layout = self

    @property
    def is_active(self) -> bool:
        return not self.spec.is_passive

    def update_bounds(self, cache: BoundsCache) -> Bounds:
        """Phase 1 (bottom-up): measure and memoise the node's own bounds."""
        return cache.get(self.node, None)

    def resolve(self, cache: Optional[BoundsCache] = None) -> LocalTransform:
        """Phase 2 (top-down): place the node inside its parent."""
        return resolve_layout(self.node, self.spec, cache)

    def detach(self) -> None:
        if self.node.layout is self:
            self.node.layout = None
        self.spec.reset_computed()

    def __repr__(self) -> str:
        return f"LayoutNode({self.node.name!r}, active={self.is_active})"
