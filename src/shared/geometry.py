"""
#WHERE
    Used by scene_graph (local/world matrices), spatial_layout (bounds,
    layout specs, transitions) and spatial_metrics.

#WHAT
    Geometry primitives shared by the engine: axis-aligned ``Bounds`` with a
    representable empty state, ``PartialVector3`` for per-axis "unset"
    layout directives, and 4x4 transform helpers (compose / decompose,
    point transforms, quaternion slerp).

#INPUT
    numpy arrays: positions (3,), quaternions (x, y, z, w), scales (3,),
    4x4 matrices.

#OUTPUT
    numpy arrays and Bounds / PartialVector3 instances.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterator, Optional, Tuple

import numpy as np
from scipy.spatial.transform import Rotation, Slerp

from src.shared.constants import BOUNDS_TOLERANCE

IDENTITY_QUATERNION = np.array([0.0, 0.0, 0.0, 1.0])


# ── Transforms ────────────────────────────────────────────────────────────────

def compose(position: np.ndarray, quaternion: np.ndarray, scale: np.ndarray) -> np.ndarray:
    """T · R · S as a 4x4 matrix.  Quaternion order is (x, y, z, w)."""
    m = np.eye(4)
    m[:3, :3] = Rotation.from_quat(quaternion).as_matrix() * np.asarray(scale, dtype=float)
    m[:3, 3] = position
    return m


def decompose(matrix: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Inverse of :func:`compose`.  A negative determinant flips the X scale."""
    position = matrix[:3, 3].copy()
    basis = matrix[:3, :3]
    scale = np.linalg.norm(basis, axis=0)
    if np.linalg.det(basis) < 0:
        scale[0] = -scale[0]
    if np.any(np.abs(scale) < 1e-12):
        return position, IDENTITY_QUATERNION.copy(), scale
    quaternion = Rotation.from_matrix(basis / scale).as_quat()
    return position, quaternion, scale


def transform_point(matrix: np.ndarray, point: np.ndarray) -> np.ndarray:
    return matrix[:3, :3] @ point + matrix[:3, 3]


def transform_points(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Apply a 4x4 affine matrix to an (N, 3) array of points."""
    return points @ matrix[:3, :3].T + matrix[:3, 3]


def apply_projection(matrix: np.ndarray, point: np.ndarray) -> np.ndarray:
    """Homogeneous transform with perspective divide."""
    h = matrix @ np.append(point, 1.0)
    return h[:3] / h[3]


def rotate(quaternion: np.ndarray, vector: np.ndarray, inverse: bool = False) -> np.ndarray:
    return Rotation.from_quat(quaternion).apply(vector, inverse=inverse)


def slerp(q0: np.ndarray, q1: np.ndarray, t: float) -> np.ndarray:
    if t <= 0.0:
        return np.asarray(q0, dtype=float).copy()
    if t >= 1.0:
        return np.asarray(q1, dtype=float).copy()
    interp = Slerp([0.0, 1.0], Rotation.from_quat([q0, q1]))
    return interp([t]).as_quat()[0]


def look_at(eye: np.ndarray, target: np.ndarray, up=(0.0, 1.0, 0.0)) -> np.ndarray:
    """Quaternion turning local -Z toward ``target`` (camera convention)."""
    z_axis = np.asarray(eye, dtype=float) - np.asarray(target, dtype=float)
    norm = np.linalg.norm(z_axis)
    if norm == 0.0:
        return IDENTITY_QUATERNION.copy()
    z_axis /= norm
    x_axis = np.cross(np.asarray(up, dtype=float), z_axis)
    if np.linalg.norm(x_axis) < 1e-9:
        x_axis = np.cross(np.array([0.0, 0.0, 1.0]), z_axis)
    x_axis /= np.linalg.norm(x_axis)
    y_axis = np.cross(z_axis, x_axis)
    return Rotation.from_matrix(np.column_stack([x_axis, y_axis, z_axis])).as_quat()


def lerp(a: np.ndarray, b: np.ndarray, t: float) -> np.ndarray:
    return a + (b - a) * t


def angle_between(a: np.ndarray, b: np.ndarray) -> float:
    """Angle in radians between two non-zero vectors."""
    denom = np.linalg.norm(a) * np.linalg.norm(b)
    if denom == 0.0:
        return 0.0
    return float(np.arccos(np.clip(np.dot(a, b) / denom, -1.0, 1.0)))


# ── Bounds ────────────────────────────────────────────────────────────────────

@dataclass(slots=True, eq=False)
class Bounds:
    """Axis-aligned box.  The empty box has min=+inf, max=-inf."""
    min: np.ndarray = field(default_factory=lambda: np.full(3, np.inf))
    max: np.ndarray = field(default_factory=lambda: np.full(3, -np.inf))

    @classmethod
    def empty(cls) -> "Bounds":
        return cls()

    @classmethod
    def from_points(cls, points: np.ndarray) -> "Bounds":
        bounds = cls()
        bounds.expand_by_points(points)
        return bounds

    @classmethod
    def from_center_size(cls, center, size) -> "Bounds":
        center = np.asarray(center, dtype=float)
        half = np.abs(np.asarray(size, dtype=float)) * 0.5
        return cls(center - half, center + half)

    @property
    def is_empty(self) -> bool:
        return bool(np.any(self.max < self.min))

    @property
    def center(self) -> np.ndarray:
        if self.is_empty:
            return np.zeros(3)
        return (self.min + self.max) * 0.5

    @property
    def size(self) -> np.ndarray:
        if self.is_empty:
            return np.zeros(3)
        return self.max - self.min

    def copy(self) -> "Bounds":
        return Bounds(self.min.copy(), self.max.copy())

    def make_empty(self) -> "Bounds":
        self.min.fill(np.inf)
        self.max.fill(-np.inf)
        return self

    def expand_by_point(self, point: np.ndarray) -> "Bounds":
        np.minimum(self.min, point, out=self.min)
        np.maximum(self.max, point, out=self.max)
        return self

    def expand_by_points(self, points: np.ndarray) -> "Bounds":
        points = np.asarray(points, dtype=float).reshape(-1, 3)
        if len(points):
            np.minimum(self.min, points.min(axis=0), out=self.min)
            np.maximum(self.max, points.max(axis=0), out=self.max)
        return self

    def union(self, other: "Bounds") -> "Bounds":
        return Bounds(np.minimum(self.min, other.min), np.maximum(self.max, other.max))

    def contains(self, other: "Bounds", tol: float = BOUNDS_TOLERANCE) -> bool:
        if other.is_empty:
            return True
        if self.is_empty:
            return False
        return bool(np.all(self.min <= other.min + tol) and np.all(other.max <= self.max + tol))

    def corners(self) -> np.ndarray:
        lo, hi = self.min, self.max
        return np.array([
            [x, y, z]
            for x in (lo[0], hi[0])
            for y in (lo[1], hi[1])
            for z in (lo[2], hi[2])
        ])

    def apply_matrix(self, matrix: np.ndarray) -> "Bounds":
        if self.is_empty:
            return Bounds.empty()
        return Bounds.from_points(transform_points(matrix, self.corners()))

    def bounding_sphere(self) -> Tuple[np.ndarray, float]:
        if self.is_empty:
            return np.zeros(3), 0.0
        return self.center, float(np.linalg.norm(self.size) * 0.5)

    def __repr__(self) -> str:
        if self.is_empty:
            return "Bounds(empty)"
        return f"Bounds(min={self.min.tolist()}, max={self.max.tolist()})"


# ── Partially specified vectors ───────────────────────────────────────────────

def _coerce(value) -> Optional[float]:
    if value is None:
        return None
    value = float(value)
    return None if math.isnan(value) else value


@dataclass(slots=True)
class PartialVector3:
    """Three optional components; ``None`` marks an unset axis.

    NaN inputs are accepted and normalised to ``None`` so callers coming from
    NaN-sentinel code paths interoperate.
    """
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None

    def __post_init__(self):
        self.x, self.y, self.z = _coerce(self.x), _coerce(self.y), _coerce(self.z)

    def __getitem__(self, axis: int) -> Optional[float]:
        return (self.x, self.y, self.z)[axis]

    def __setitem__(self, axis: int, value) -> None:
        setattr(self, "xyz"[axis], _coerce(value))

    def __iter__(self) -> Iterator[Optional[float]]:
        return iter((self.x, self.y, self.z))

    @property
    def mask(self) -> np.ndarray:
        return np.array([v is not None for v in self])

    @property
    def definedness(self) -> Tuple[bool, bool, bool]:
        return (self.x is not None, self.y is not None, self.z is not None)

    @property
    def is_unset(self) -> bool:
        return not any(self.definedness)

    @property
    def is_fully_set(self) -> bool:
        return all(self.definedness)

    def values(self, fill: float = 0.0) -> np.ndarray:
        return np.array([fill if v is None else v for v in self])

    def set(self, x=None, y=None, z=None) -> "PartialVector3":
        self.x, self.y, self.z = _coerce(x), _coerce(y), _coerce(z)
        return self

    def clear(self) -> "PartialVector3":
        self.x = self.y = self.z = None
        return self

    def copy_from(self, other: "PartialVector3") -> "PartialVector3":
        self.x, self.y, self.z = other.x, other.y, other.z
        return self

    def copy(self) -> "PartialVector3":
        return PartialVector3(self.x, self.y, self.z)

    def lerp_toward(self, target: "PartialVector3", t: float) -> "PartialVector3":
        """Per-axis lerp; an unset operand on either side adopts the target."""
        for axis in range(3):
            current, goal = self[axis], target[axis]
            if current is None or goal is None:
                self[axis] = goal
            else:
                self[axis] = current + (goal - current) * t
        return self
