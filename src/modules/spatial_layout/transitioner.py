"""
Smooth layout transitions, including pose-preserving reparenting.

Each frame the caller sets a ``LayoutTarget`` (where the node should end up:
parent, explicit TRS, align / origin / size) and calls
``LayoutTransitioner.update(node, target, lerp_factor)``.

Two paths:

* **Topology change**: the target parent differs from the current one, or
  any align/origin/size axis flips between set and unset.  The node's world
  matrix is snapshotted, the node is reparented, the directives are stepped
  toward the target, and the local TRS is back-solved so the world pose does
  not jump.  Explicit position/orientation/scale targets are then approached
  on the following frames.
* **Steady state**: directives, position and scale are lerped and the
  orientation slerped toward the target.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

from src.modules.scene_graph.node import SceneNode
from src.shared.errors import CyclicParentError
from src.shared.geometry import IDENTITY_QUATERNION, PartialVector3, lerp, slerp
from .layout import LayoutNode, LayoutSpec, preserve_world_pose, resolve_layout

log = logging.getLogger(__name__)


class _KeepParent:
    def __repr__(self) -> str:
        return "KEEP_PARENT"


KEEP_PARENT = _KeepParent()


@dataclass(eq=False)
class LayoutTarget:
    """Desired end state for a transitioning node.

    ``parent`` is ``KEEP_PARENT`` to leave the hierarchy alone, ``None`` to
    detach the node, or the node to move under.
    """
    parent: object = KEEP_PARENT
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    quaternion: np.ndarray = field(default_factory=lambda: IDENTITY_QUATERNION.copy())
    scale: np.ndarray = field(default_factory=lambda: np.ones(3))
    align: PartialVector3 = field(default_factory=PartialVector3)
    origin: PartialVector3 = field(default_factory=PartialVector3)
    size: PartialVector3 = field(default_factory=PartialVector3)

    @property
    def definedness(self) -> Tuple[bool, ...]:
        return self.align.definedness + self.origin.definedness + self.size.definedness

    def reset(self) -> "LayoutTarget":
        self.parent = KEEP_PARENT
        self.position = np.zeros(3)
        self.quaternion = IDENTITY_QUATERNION.copy()
        self.scale = np.ones(3)
        self.align.clear()
        self.origin.clear()
        self.size.clear()
        return self


def _step_directives(spec: LayoutSpec, target: LayoutTarget, t: float) -> None:
    spec.align.lerp_toward(target.align, t)
    spec.origin.lerp_toward(target.origin, t)
    spec.size.lerp_toward(target.size, t)


class LayoutTransitioner:
    """Drives nodes toward their ``LayoutTarget`` one frame at a time."""

    def __init__(self):
        self.topology_changes = 0

    @staticmethod
    def parent_changes(node: SceneNode, target: LayoutTarget) -> bool:
        return target.parent is not KEEP_PARENT and target.parent is not node.parent

    @staticmethod
    def is_topology_change(node: SceneNode, target: LayoutTarget) -> bool:
        spec = node.layout.spec if node.layout is not None else LayoutSpec()
        return (LayoutTransitioner.parent_changes(node, target)
                or spec.definedness != target.definedness)

    def update(self, node: SceneNode, target: LayoutTarget, lerp_factor: float) -> None:
        if not 0.0 <= lerp_factor <= 1.0:
            raise ValueError(f"lerp_factor must be in [0, 1], got {lerp_factor}")
        layout = node.layout if node.layout is not None else LayoutNode(node)
        spec = layout.spec

        parent_changed = self.parent_changes(node, target)
        new_parent = target.parent
        if parent_changed and new_parent is not None:
            if new_parent is node or node.is_ancestor_of(new_parent):
                raise CyclicParentError(
                    f"cannot move '{node.name}' under its own descendant '{new_parent.name}'"
                )

        if self.is_topology_change(node, target):
            node.update_world_matrix(update_parents=True, update_children=False)
            world = node.matrix_world.copy()
            if parent_changed:
                if node.parent is not None:
                    node.parent.remove(node)
                if new_parent is not None:
                    new_parent.add(node)
            _step_directives(spec, target, lerp_factor)
            preserve_world_pose(node, world)
            self.topology_changes += 1
            log.debug("[transition] topology change on %r (parent=%r)", node, node.parent)
        else:
            _step_directives(spec, target, lerp_factor)
            node.position = lerp(node.position, target.position, lerp_factor)
            node.scale = lerp(node.scale, target.scale, lerp_factor)
            node.quaternion = slerp(node.quaternion, target.quaternion, lerp_factor)

        resolve_layout(node, spec)
        node.update_world_matrix(update_parents=True, update_children=True)
