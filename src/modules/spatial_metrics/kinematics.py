"""Relative motion of one node with respect to another, smoothed per frame."""
from __future__ import annotations

import math

import numpy as np
from scipy.spatial.transform import Rotation

from src.modules.scene_graph.node import SceneNode
from src.shared.constants import EMA_PERIOD


class ExponentialMovingAverage:
    """EMA over ``period`` samples; works on scalars and numpy arrays alike."""

    def __init__(self, period: int = EMA_PERIOD, start=0.0):
        if period < 1:
            raise ValueError(f"EMA period must be >= 1, got {period}")
        self.multiplier = 2.0 / (period + 1)
        self.mean = np.array(start, dtype=float)

    def update(self, value):
        self.mean = self.mean + self.multiplier * (np.asarray(value, dtype=float) - self.mean)
        return self.mean


class KinematicMetrics:
    """Tracks how fast ``origin`` moves relative to ``object``.

    Velocities are world-space and expressed as origin minus object, so a
    head (origin) walking toward a static panel (object) has a positive speed
    even though the panel never moves.
    """

    def __init__(self, object: SceneNode, origin: SceneNode, period: int = EMA_PERIOD):
        self.object = object
        self.origin = origin
        self._linear = ExponentialMovingAverage(period, np.zeros(3))
        self._angular = ExponentialMovingAverage(period, np.zeros(3))
        self._last_object_position = object.get_world_position()
        self._last_origin_position = origin.get_world_position()
        self._last_object_rotation = Rotation.from_quat(object.get_world_quaternion())
        self._last_origin_rotation = Rotation.from_quat(origin.get_world_quaternion())

        self.linear_velocity = np.zeros(3)   # m/s
        self.linear_speed = 0.0              # m/s
        self.angular_velocity = np.zeros(3)  # rad/s, rotation-vector form
        self.angular_speed = 0.0             # deg/s

    def _angular_rate(self, node: SceneNode, last: Rotation, delta_time: float):
        current = Rotation.from_quat(node.get_world_quaternion())
        return (current * last.inv()).as_rotvec() / delta_time, current

    def update(self, delta_time: float) -> None:
        if delta_time <= 0.0:
            raise ValueError(f"delta_time must be positive, got {delta_time}")

        object_position = self.object.get_world_position()
        origin_position = self.origin.get_world_position()
        object_velocity = (object_position - self._last_object_position) / delta_time
        origin_velocity = (origin_position - self._last_origin_position) / delta_time
        self._last_object_position = object_position
        self._last_origin_position = origin_position

        self.linear_velocity = self._linear.update(origin_velocity - object_velocity).copy()
        self.linear_speed = float(np.linalg.norm(self.linear_velocity))

        object_rate, self._last_object_rotation = self._angular_rate(
            self.object, self._last_object_rotation, delta_time)
        origin_rate, self._last_origin_rotation = self._angular_rate(
            self.origin, self._last_origin_rotation, delta_time)

        self.angular_velocity = self._angular.update(origin_rate - object_rate).copy()
        self.angular_speed = math.degrees(float(np.linalg.norm(self.angular_velocity)))
