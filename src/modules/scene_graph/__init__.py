"""
#WHERE
    Imported by spatial_layout, spatial_metrics, frame_loop.py, main.py and
    the tests.

#WHAT
    Scene Graph: the in-process stand-in for the renderer's scene graph:
    local TRS transforms, parent/child structure, cached world matrices,
    renderable extents, and a perspective camera node.

#INPUT
    Node names, local transforms, local-space geometry Bounds.

#OUTPUT
    SceneNode / PerspectiveCamera trees with up-to-date world matrices.
"""

from .node import SceneNode, INHERIT
from .camera import CameraConfig, PerspectiveCamera

__all__ = ["SceneNode", "INHERIT", "CameraConfig", "PerspectiveCamera"]
