"""Two-phase layout driver: bounds bottom-up, placement top-down."""
from __future__ import annotations

import logging

from src.modules.scene_graph.node import SceneNode
from .bounds import BoundsCache

log = logging.getLogger(__name__)


class LayoutSystem:
    """Runs every ``LayoutNode`` under ``root`` once per frame.

    Phase 1 walks the tree post-order (children before parents) and measures
    each laid-out node's own bounds into a per-frame cache.  Phase 2 walks
    pre-order (parents before children), resolving each layout and refreshing
    world matrices on the way down so reference-frame measurements see the
    parent's placement for this frame.
    """

    def __init__(self, root: SceneNode):
        self.root = root
        self.cache = BoundsCache()
        self.frame_count = 0

    def update(self) -> int:
        """Lay out the whole tree; returns the number of layouts resolved."""
        self.cache.clear()
        self._measure(self.root)
        if self.root.parent is not None:
            self.root.parent.update_world_matrix(update_parents=True, update_children=False)
        resolved = self._place(self.root)
        self.frame_count += 1
        return resolved

    def _measure(self, node: SceneNode) -> None:
        for child in node.children:
            self._measure(child)
        if node.layout is not None and node.layout.is_active:
            node.layout.update_bounds(self.cache)

    def _place(self, node: SceneNode) -> int:
        resolved = 0
        if node.layout is not None:
            node.layout.resolve(self.cache)
            resolved += 1
        node.update_world_matrix(update_parents=False, update_children=False)
        for child in node.children:
            resolved += self._place(child)
        return resolved
