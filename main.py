#!/usr/bin/env python3
"""Adaptive AR overlay demo: a camera orbits an anchor and the instruction panel follows."""

import argparse
import logging
import math
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import numpy as np

from src.frame_loop import FrameLoop, FrameLoopConfig
from src.shared.geometry import Bounds, look_at
from src.shared.profiling import tracemalloc_snapshot
from src.modules.scene_graph import CameraConfig, PerspectiveCamera, SceneNode
from src.modules.spatial_layout import LayoutNode, LayoutTarget
from src.modules.spatial_metrics import SpatialMetrics, distance, visual_angular_offset
from src.modules.adaptive_state import AdaptiveProperty, Zone

logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(levelname)-8s  %(message)s", datefmt="%H:%M:%S")


def _args() -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Headless adaptive layout demo",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python main.py --frames 600\n"
            "  python main.py --radius-min 0.6 --radius-max 8 --period 6 --verbose\n"
        ),
    )
    p.add_argument("--frames", type=int, default=600)
    p.add_argument("--fps", type=int, default=60)
    p.add_argument("--lerp-rate", type=float, default=8.0)
    p.add_argument("--fov", type=float, default=60.0)
    p.add_argument("--radius-min", type=float, default=0.8)
    p.add_argument("--radius-max", type=float, default=5.0)
    p.add_argument("--period", type=float, default=4.0, help="seconds per approach/retreat cycle")
    p.add_argument("--skip-errors", action="store_true", help="log and skip frames that raise")
    p.add_argument("--profile-memory", action="store_true")
    p.add_argument("--verbose", action="store_true")
    return p.parse_args()


def build_scene(camera_config: CameraConfig):
    scene = SceneNode("scene")
    camera = PerspectiveCamera.from_config(camera_config)
    anchor = SceneNode("snubber", geometry=Bounds.from_center_size((0.0, 0.0, 0.0), (0.4, 0.6, 0.4)))
    panel = SceneNode("instruction-panel",
                      geometry=Bounds.from_center_size((0.0, 0.0, 0.0), (0.3, 0.2, 0.01)))
    scene.add(camera, anchor)
    anchor.add(panel)
    LayoutNode(panel)
    return scene, camera, anchor, panel


def attach_to_screen(target: LayoutTarget, camera: SceneNode) -> None:
    target.reset()
    target.parent = camera
    target.align.set(-1.0, 0.0, -0.5)
    target.origin.set(-1.0, 0.0, -1.0)
    target.size.set(0.3, None, None)


def attach_to_world(target: LayoutTarget, anchor: SceneNode) -> None:
    target.reset()
    target.parent = anchor
    target.align.set(-1.0, 0.0, 1.5)
    target.origin.set(1.0, 0.0, 0.0)


def orbit(camera: SceneNode, t: float, radius_min: float, radius_max: float, period: float) -> None:
    phase = 2.0 * math.pi * t / period
    radius = radius_min + (radius_max - radius_min) * 0.5 * (1.0 - math.cos(phase))
    angle = 0.25 * phase
    camera.position = np.array([radius * math.sin(angle), 0.3, radius * math.cos(angle)])
    camera.quaternion = look_at(camera.position, np.zeros(3))


def main() -> None:
    args = _args()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    scene, camera, anchor, panel = build_scene(CameraConfig(fov=args.fov))
    loop = FrameLoop(scene, FrameLoopConfig(
        fps=args.fps, lerp_rate=args.lerp_rate, skip_frame_on_error=args.skip_errors,
    ))
    metrics = SpatialMetrics(camera)

    anchor_size = loop.add_property(AdaptiveProperty(
        lambda: metrics.visual_size_of(anchor, exclude_bounding_contexts=True),
        [Zone("small", threshold=15, delay_ms=100), 40.0, Zone("large", threshold=15, delay_ms=100)],
        name="anchor-visual-size",
    ))
    panel_target = loop.add_transition(panel)
    attach_to_world(panel_target, anchor)

    @loop.add_behaviour
    def follow_camera(dt: float) -> None:
        orbit(camera, loop.elapsed + dt, args.radius_min, args.radius_max, args.period)
        camera.update_world_matrix(update_parents=True, update_children=True)

    @loop.add_behaviour
    def choose_attachment(dt: float) -> None:
        if anchor_size.changing_to("small"):
            attach_to_screen(panel_target, camera)
        elif anchor_size.changing_to("large"):
            attach_to_world(panel_target, anchor)
        if anchor_size.changing():
            print(f"frame {loop.frame:4d}  t={loop.elapsed:5.2f}s  "
                  f"d={distance(camera, anchor):4.2f} m  size={anchor_size.metric_value:6.1f} deg  "
                  f"offset={visual_angular_offset(camera, panel):5.1f} deg  "
                  f"-> {anchor_size.state:<5}  panel under {panel_target.parent.name}")

    if args.profile_memory:
        with tracemalloc_snapshot(f"{args.frames} frames"):
            completed = loop.run(args.frames)
    else:
        completed = loop.run(args.frames)

    print(f"\nframes  : {completed}/{args.frames} ({loop.skipped_frames} skipped)")
    print(f"parent  : {panel.parent.name}")
    print(f"position: {np.round(panel.get_world_position(), 3).tolist()}")
    print("timings : " + ", ".join(f"{k}={v * 1000:.1f}ms" for k, v in loop.timings.items()))


if __name__ == "__main__":
    main()
