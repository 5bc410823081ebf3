"""
#WHERE
    Used by frame_loop.py, main.py, spatial_metrics (bounds for visual size)
    and the tests.

#WHAT
    Spatial Layout: hierarchical bounds under reference frames (including
    camera frustum slices), align/origin/size placement, pose-preserving
    transitions, and the two-phase per-frame layout driver.

#INPUT
    SceneNode trees with LayoutNode attachments and LayoutTarget goals.

#OUTPUT
    Bounds, resolved LocalTransforms written into the scene graph.
"""

from .bounds import (
    BoundsCache,
    camera_frustum_bounds,
    compute_bounds,
    compute_world_bounds,
    is_bounding_context,
)
from .reference_frame import resolve_frame
from .layout import (
    LayoutNode,
    LayoutSpec,
    LocalTransform,
    convert_offset,
    get_offset_for_position,
    get_position_for_offset,
    preserve_world_pose,
    resolve_layout,
    set_parent,
    set_reference_frame,
)
from .transitioner import KEEP_PARENT, LayoutTarget, LayoutTransitioner
from .system import LayoutSystem

__all__ = [
    "BoundsCache",
    "camera_frustum_bounds",
    "compute_bounds",
    "compute_world_bounds",
    "is_bounding_context",
    "resolve_frame",
    "LayoutNode",
    "LayoutSpec",
    "LocalTransform",
    "convert_offset",
    "get_offset_for_position",
    "get_position_for_offset",
    "preserve_world_pose",
    "resolve_layout",
    "set_parent",
    "set_reference_frame",
    "KEEP_PARENT",
    "LayoutTarget",
    "LayoutTransitioner",
    "LayoutSystem",
]
