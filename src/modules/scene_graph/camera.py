"""
#WHERE
    Used by spatial_layout (camera-parent frustum bounds), spatial_metrics
    (field of view, camera forward axis), frame_loop.py and main.py.

#WHAT
    Projective camera node.  Provides CameraConfig for static setup and
    PerspectiveCamera, a SceneNode that looks down its local -Z axis and
    exposes an OpenGL-convention projection matrix.

#INPUT
    Viewport size, vertical field of view (degrees), near/far planes.

#OUTPUT
    CameraConfig dataclass, PerspectiveCamera node, 4x4 projection matrices.
"""

import math
from dataclasses import dataclass

import numpy as np

from src.shared.constants import (
    DEFAULT_FAR, DEFAULT_FOV, DEFAULT_NEAR, DEFAULT_VIEW_HEIGHT, DEFAULT_VIEW_WIDTH,
)
from .node import SceneNode


@dataclass
class CameraConfig:
    width: int = DEFAULT_VIEW_WIDTH
    height: int = DEFAULT_VIEW_HEIGHT
    fov: float = DEFAULT_FOV
    near: float = DEFAULT_NEAR
    far: float = DEFAULT_FAR

    @property
    def aspect(self) -> float:
        return self.width / self.height


class PerspectiveCamera(SceneNode):
    """Symmetric perspective camera node."""

    is_camera = True

    def __init__(self, name: str = "camera", fov: float = DEFAULT_FOV,
                 aspect: float = DEFAULT_VIEW_WIDTH / DEFAULT_VIEW_HEIGHT,
                 near: float = DEFAULT_NEAR, far: float = DEFAULT_FAR, **kwargs):
        super().__init__(name, **kwargs)
        if not 0.0 < fov < 180.0:
            raise ValueError(f"fov must be in (0, 180) degrees, got {fov}")
        if not 0.0 < near < far:
            raise ValueError(f"expected 0 < near < far, got near={near} far={far}")
        self.fov = fov
        self.aspect = aspect
        self.near = near
        self.far = far

    @classmethod
    def from_config(cls, config: CameraConfig, name: str = "camera") -> "PerspectiveCamera":
        return cls(name, fov=config.fov, aspect=config.aspect, near=config.near, far=config.far)

    @property
    def projection_matrix(self) -> np.ndarray:
        f = 1.0 / math.tan(math.radians(self.fov) / 2.0)
        n, fa = self.near, self.far
        return np.array([
            [f / self.aspect, 0.0, 0.0, 0.0],
            [0.0, f, 0.0, 0.0],
            [0.0, 0.0, (fa + n) / (n - fa), 2.0 * fa * n / (n - fa)],
            [0.0, 0.0, -1.0, 0.0],
        ])

    @property
    def projection_matrix_inverse(self) -> np.ndarray:
        return np.linalg.inv(self.projection_matrix)
