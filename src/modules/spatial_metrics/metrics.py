"""
Observer-relative spatial measurements.

All angles are returned in degrees.  Observers may be regular scene nodes
(forward = local +Z) or cameras (forward = local -Z).
"""
from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from src.modules.scene_graph.node import SceneNode
from src.modules.spatial_layout.bounds import compute_world_bounds
from src.shared.constants import COINCIDENT_EPSILON
from src.shared.errors import NotACameraError
from src.shared.geometry import angle_between, rotate
from src.shared.pools import vectors

_PLUS_Z = np.array([0.0, 0.0, 1.0])
_MINUS_Z = np.array([0.0, 0.0, -1.0])


@dataclass(frozen=True)
class FieldOfView:
    left: float
    right: float
    top: float
    bottom: float

    @property
    def horizontal(self) -> float:
        return self.right - self.left

    @property
    def vertical(self) -> float:
        return self.top - self.bottom


def forward_axis(node: SceneNode) -> np.ndarray:
    return (_MINUS_Z if node.is_camera else _PLUS_Z).copy()


def distance(observer: SceneNode, target: SceneNode) -> float:
    return float(np.linalg.norm(target.get_world_position() - observer.get_world_position()))


def direction(observer: SceneNode, target: SceneNode) -> np.ndarray:
    """Unit vector from observer to target, in the observer's local frame.

    Coincident positions return the observer's forward axis.
    """
    with vectors.scoped(1) as (delta,):
        np.subtract(target.get_world_position(), observer.get_world_position(), out=delta)
        if float(delta @ delta) <= COINCIDENT_EPSILON:
            return forward_axis(observer)
        local = rotate(observer.get_world_quaternion(), delta, inverse=True)
    return local / np.linalg.norm(local)


def visual_angular_size(observer: SceneNode, target: SceneNode,
                        exclude_bounding_contexts: bool = False) -> float:
    """Angle subtended by the target's bounding sphere, 0 to 360 degrees.

    Reaches 180 when the observer touches the sphere and keeps growing
    linearly to 360 at its centre.
    """
    bounds = compute_world_bounds(target, exclude_bounding_contexts)
    center, radius = bounds.bounding_sphere()
    if radius <= 0.0:
        return 0.0
    d = float(np.linalg.norm(center - observer.get_world_position()))
    if d >= radius:
        return math.degrees(2.0 * math.atan2(radius, d - radius))
    return 180.0 + 180.0 * (1.0 - d / radius)


def visual_angular_offset(observer: SceneNode, target: SceneNode) -> float:
    """Angle between the observer's forward axis and the target, 0 to 180 degrees."""
    if distance(observer, target) ** 2 <= COINCIDENT_EPSILON:
        return 180.0
    return math.degrees(angle_between(forward_axis(observer), direction(observer, target)))


def field_of_view(observer: SceneNode) -> FieldOfView:
    if not observer.is_camera:
        raise NotACameraError(f"field of view requested on non-camera '{observer.name}'")
    half_v = math.radians(observer.fov) / 2.0
    half_h = math.atan(math.tan(half_v) * observer.aspect)
    return FieldOfView(
        left=-math.degrees(half_h),
        right=math.degrees(half_h),
        top=math.degrees(half_v),
        bottom=-math.degrees(half_v),
    )


class SpatialMetrics:
    """Binds an observer so metrics can be handed to adaptive properties as closures."""

    def __init__(self, observer: SceneNode):
        self.observer = observer

    def distance_of(self, target: SceneNode) -> float:
        return distance(self.observer, target)

    def direction_of(self, target: SceneNode) -> np.ndarray:
        return direction(self.observer, target)

    def visual_size_of(self, target: SceneNode, exclude_bounding_contexts: bool = False) -> float:
        return visual_angular_size(self.observer, target, exclude_bounding_contexts)

    def visual_offset_of(self, target: SceneNode) -> float:
        return visual_angular_offset(self.observer, target)

    def field_of_view(self) -> FieldOfView:
        return field_of_view(self.observer)
