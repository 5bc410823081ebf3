"""
#WHERE
    Imported by every engine module (scene_graph, spatial_layout,
    spatial_metrics, adaptive_state) and by frame_loop.py / main.py.

#WHAT
    Centralised numeric constants used across 3+ modules.  Edit here, not in
    individual module files.

#INPUT / #OUTPUT
    Pure constants: no I/O.
"""

# ── Layout ───────────────────────────────────────────────────────────────

MIN_EXTENT: float = 1e-5        # clamp for zero-size bounds denominators
DEFAULT_CAMERA_DEPTH: float = 1.0   # metres in front of a camera when nothing else says

# ── Numerics ─────────────────────────────────────────────────────────────

COINCIDENT_EPSILON: float = 1e-12   # squared-distance below which two points coincide
BOUNDS_TOLERANCE: float = 1e-9      # slack for Bounds.contains comparisons

# ── Camera ───────────────────────────────────────────────────────────────

DEFAULT_FOV: float = 60.0       # vertical field of view, degrees
DEFAULT_NEAR: float = 0.1
DEFAULT_FAR: float = 100.0
DEFAULT_VIEW_WIDTH:  int = 640
DEFAULT_VIEW_HEIGHT: int = 480

# ── Kinematics ───────────────────────────────────────────────────────────

EMA_PERIOD: int = 5             # smoothing window for velocity estimates

# ── Frame loop ───────────────────────────────────────────────────────────

DEFAULT_FPS: int = 60
DEFAULT_LERP_RATE: float = 8.0  # lerp factor per second, clamped to [0, 1] each frame
MAX_DELTA_TIME: float = 0.1     # seconds; longer frames are clamped
