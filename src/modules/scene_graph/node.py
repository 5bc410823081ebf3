"""Minimal scene-graph node: local TRS, parent/children, cached world matrix."""
from __future__ import annotations

from typing import TYPE_CHECKING, Iterator, List, Optional

import numpy as np

from src.shared.errors import CyclicParentError
from src.shared.geometry import (
    IDENTITY_QUATERNION, Bounds, compose, decompose, transform_point,
)

if TYPE_CHECKING:
    from src.modules.spatial_layout.layout import LayoutNode


class _Inherit:
    """Sentinel: the node has no reference-frame override of its own."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "INHERIT"

    def __bool__(self) -> bool:
        return False


INHERIT = _Inherit()


class SceneNode:
    """Tree node with a local transform and a cached world transform.

    ``geometry`` is the local-space extent of whatever this node renders
    (``None`` for pure grouping nodes).  ``layout`` is set by
    :class:`~src.modules.spatial_layout.layout.LayoutNode` when the node
    opts into declarative placement.
    """

    is_camera = False

    def __init__(self, name: str = "", geometry: Optional[Bounds] = None,
                 position=None, quaternion=None, scale=None):
        self.name = name
        self.geometry = geometry
        self.position = np.zeros(3) if position is None else np.array(position, dtype=float)
        self.quaternion = (IDENTITY_QUATERNION.copy() if quaternion is None
                           else np.array(quaternion, dtype=float))
        self.scale = np.ones(3) if scale is None else np.array(scale, dtype=float)

        self.parent: Optional[SceneNode] = None
        self.children: List[SceneNode] = []
        self.matrix = np.eye(4)
        self.matrix_world = np.eye(4)

        self.layout: Optional["LayoutNode"] = None
        self.layout_ignore = False
        self.reference_frame = INHERIT

    # ── hierarchy ────────────────────────────────────────────────

    def add(self, *children: "SceneNode") -> "SceneNode":
        for child in children:
            if child is self or child.is_ancestor_of(self):
                raise CyclicParentError(
                    f"cannot add '{child.name}' under '{self.name}': it would become its own ancestor"
                )
            if child.parent is not None:
                child.parent.remove(child)
            child.parent = self
            self.children.append(child)
        return self

    def remove(self, *children: "SceneNode") -> "SceneNode":
        for child in children:
            if child.parent is self:
                self.children.remove(child)
                child.parent = None
        return self

    def is_ancestor_of(self, node: Optional["SceneNode"]) -> bool:
        if node is None:
            return False
        return any(ancestor is self for ancestor in node.ancestors())

    def ancestors(self) -> Iterator["SceneNode"]:
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def root(self) -> "SceneNode":
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def traverse(self) -> Iterator["SceneNode"]:
        """Pre-order walk of the subtree, self first."""
        yield self
        for child in self.children:
            yield from child.traverse()

    def find(self, name: str) -> Optional["SceneNode"]:
        for node in self.traverse():
            if node.name == name:
                return node
        return None

    # ── transforms ───────────────────────────────────────────────

    def update_matrix(self) -> np.ndarray:
        position, scale = self.position, self.scale
        layout = self.layout
        if layout is not None and layout.spec.resolved and not layout.spec.is_passive:
            spec = layout.spec
            position = position + spec.computed_align_offset + spec.computed_origin_offset
            scale = scale * spec.computed_scale
        self.matrix = compose(position, self.quaternion, scale)
        return self.matrix

    def update_world_matrix(self, update_parents: bool = False, update_children: bool = True) -> None:
        if update_parents and self.parent is not None:
            self.parent.update_world_matrix(update_parents=True, update_children=False)
        self.update_matrix()
        if self.parent is None:
            self.matrix_world = self.matrix.copy()
        else:
            self.matrix_world = self.parent.matrix_world @ self.matrix
        if update_children:
            for child in self.children:
                child.update_world_matrix(update_parents=False, update_children=True)

    def local_to_world(self, point) -> np.ndarray:
        return transform_point(self.matrix_world, np.asarray(point, dtype=float))

    def world_to_local(self, point) -> np.ndarray:
        return transform_point(np.linalg.inv(self.matrix_world), np.asarray(point, dtype=float))

    def get_world_position(self) -> np.ndarray:
        self.update_world_matrix(update_parents=True, update_children=False)
        return self.matrix_world[:3, 3].copy()

    def get_world_quaternion(self) -> np.ndarray:
        self.update_world_matrix(update_parents=True, update_children=False)
        return decompose(self.matrix_world)[1]

    def get_world_scale(self) -> np.ndarray:
        self.update_world_matrix(update_parents=True, update_children=False)
        return decompose(self.matrix_world)[2]

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
