"""Reference-frame resolution: which ancestor's space a node is laid out in."""
from __future__ import annotations

from typing import Optional

from src.modules.scene_graph.node import INHERIT, SceneNode


def resolve_frame(node: SceneNode, inherited=INHERIT) -> Optional[SceneNode]:
    """Nearest explicit ``reference_frame`` override on ``node`` or its ancestors.

    Returns ``None`` when no override is found (or an ancestor explicitly sets
    ``None``), meaning "measure in the node's immediate parent space".

    ``inherited`` short-circuits the walk: callers resolving a child right
    after its parent pass the parent's result, and it is returned unchanged
    unless the child carries its own override.
    """
    if inherited is not INHERIT and node.reference_frame is INHERIT:
        return inherited
    current: Optional[SceneNode] = node
    while current is not None:
        if current.reference_frame is not INHERIT:
            return current.reference_frame
        current = current.parent
    return None
