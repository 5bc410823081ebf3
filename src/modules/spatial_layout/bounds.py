"""
Hierarchical bounding volumes for layout.

``compute_bounds(node, frame)`` unions the renderable extents of a subtree in
the local space of ``frame`` (or of ``node`` itself when ``frame`` is None).
Descendants that own a layout of their own ("bounding contexts") and nodes
flagged ``layout_ignore`` are skipped together with their subtrees, so a
laid-out child never inflates the box it is being placed into.

Projective parents are handled by ``camera_frustum_bounds``: the visible
frustum slice at a given depth, which lets align offsets stay in [-1, 1]
terms for children of a camera.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

import numpy as np

from src.modules.scene_graph.node import SceneNode
from src.shared.errors import NotACameraError
from src.shared.geometry import Bounds, apply_projection, transform_points
from src.shared.pools import matrices

log = logging.getLogger(__name__)


def is_bounding_context(node: SceneNode) -> bool:
    layout = node.layout
    return layout is not None and not layout.spec.is_passive


def _is_excluded(node: SceneNode) -> bool:
    return node.layout_ignore or is_bounding_context(node)


def _accumulate(node: SceneNode, matrix: np.ndarray, out: Bounds, exclude: bool) -> None:
    geometry = node.geometry
    if geometry is not None and not geometry.is_empty:
        out.expand_by_points(transform_points(matrix, geometry.corners()))
    for child in node.children:
        if exclude and _is_excluded(child):
            continue
        with matrices.scoped(1) as (child_matrix,):
            np.matmul(matrix, child.update_matrix(), out=child_matrix)
            _accumulate(child, child_matrix, out, exclude)


def relative_matrix(node: SceneNode, frame: Optional[SceneNode]) -> np.ndarray:
    """Matrix mapping ``node``-local coordinates into ``frame``-local ones."""
    if frame is None or frame is node:
        return np.eye(4)
    node.update_world_matrix(update_parents=True, update_children=False)
    frame.update_world_matrix(update_parents=True, update_children=False)
    return np.linalg.inv(frame.matrix_world) @ node.matrix_world


def compute_bounds(node: Optional[SceneNode], frame: Optional[SceneNode] = None,
                   exclude_bounding_contexts: bool = True) -> Bounds:
    """Bounds of ``node``'s subtree expressed in ``frame``'s local space.

    The root node is always included, even if it is itself a bounding
    context.  Returns ``Bounds.empty()`` when no geometry is found.
    """
    out = Bounds.empty()
    if node is None:
        return out
    _accumulate(node, relative_matrix(node, frame), out, exclude_bounding_contexts)
    return out


def compute_world_bounds(node: SceneNode, exclude_bounding_contexts: bool = False) -> Bounds:
    out = Bounds.empty()
    node.update_world_matrix(update_parents=True, update_children=False)
    _accumulate(node, node.matrix_world, out, exclude_bounding_contexts)
    return out


def camera_frustum_bounds(camera: SceneNode, depth: float) -> Bounds:
    """Visible slice of ``camera``'s frustum on the plane ``z = -depth``.

    The near-plane NDC corners are back-projected through the inverse
    projection and each ray is scaled out to ``depth``.  The box has zero
    extent along Z.
    """
    if not camera.is_camera:
        raise NotACameraError(f"'{camera.name}' is not a camera")
    if depth <= 0.0:
        raise ValueError(f"frustum depth must be positive, got {depth}")
    inverse = camera.projection_matrix_inverse
    corners = []
    for x in (-1.0, 1.0):
        for y in (-1.0, 1.0):
            near_point = apply_projection(inverse, np.array([x, y, -1.0]))
            corners.append(near_point * (depth / -near_point[2]))
    return Bounds.from_points(np.array(corners))


class BoundsCache:
    """Per-frame memo of ``compute_bounds`` results.

    Owned by the layout driver and cleared explicitly at the start of every
    frame; entries are never reused across frames.
    """

    def __init__(self):
        self._entries: Dict[Tuple[int, Optional[int]], Bounds] = {}
        self.hits = 0
        self.misses = 0

    def get(self, node: Optional[SceneNode], frame: Optional[SceneNode] = None) -> Bounds:
        if node is None:
            return Bounds.empty()
        key = (id(node), None if frame is None else id(frame))
        cached = self._entries.get(key)
        if cached is not None:
            self.hits += 1
            return cached
        self.misses += 1
        bounds = self._entries[key] = compute_bounds(node, frame)
        return bounds

    def invalidate(self, node: SceneNode) -> None:
        """Drop every entry measured for ``node``."""
        for key in [k for k in self._entries if k[0] == id(node)]:
            del self._entries[key]

    def clear(self) -> None:
        if self._entries:
            log.debug("[bounds] cache cleared: %d entries, %d hits, %d misses",
                      len(self._entries), self.hits, self.misses)
        self._entries.clear()
        self.hits = self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)
