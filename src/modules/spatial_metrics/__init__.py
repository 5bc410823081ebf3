"""
#WHERE
    Used by frame_loop.py, main.py (metric closures for adaptive properties)
    and the tests.

#WHAT
    Spatial Metrics: distance, local direction, visual angular size and
    offset, camera field of view, and EMA-smoothed relative kinematics.

#INPUT
    Observer and target SceneNodes (world matrices refreshed on demand).

#OUTPUT
    Floats in metres / degrees, unit direction vectors, FieldOfView.
"""

from .metrics import (
    FieldOfView,
    SpatialMetrics,
    direction,
    distance,
    field_of_view,
    forward_axis,
    visual_angular_offset,
    visual_angular_size,
)
from .kinematics import ExponentialMovingAverage, KinematicMetrics

__all__ = [
    "FieldOfView",
    "SpatialMetrics",
    "direction",
    "distance",
    "field_of_view",
    "forward_axis",
    "visual_angular_offset",
    "visual_angular_size",
    "ExponentialMovingAverage",
    "KinematicMetrics",
]
