"""Shared constants and paths for ikgrab."""

from pathlib import Path

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent.parent
ASSETS_DIR = PROJECT_ROOT / "assets"
CONFIG_DIR = ASSETS_DIR / "config"

SOLVER_CONFIG_NAME = "ik_solver.json"

# Joint defaults
DEFAULT_JOINT_AXIS = (0.0, 0.0, 1.0)

# Fallback reach point (joint-local) when a joint has no geometry below it
REACH_POINT_FALLBACK = (0.0, 0.0, 0.1)

# CCD solver defaults
IK_TOLERANCE = 0.01               # length units
IK_MAX_ITERATIONS = 15
IK_DAMPING_FACTOR = 0.5
IK_MAX_ANGLE_CHANGE = 0.15        # rad per joint per iteration
IK_SMOOTHING_FACTOR = 0.3
IK_ORIENTATION_WEIGHT = 0.3

# Orientation correction (empirically tuned)
IK_ORIENTATION_STEP = 0.02        # rad, scaled by orientation weight
IK_ORIENTATION_JOINT_COUNT = 2    # trailing chain joints that get nudged
IK_ORIENTATION_DRIFT_DOT = 0.98

# Fixed solver thresholds
IK_MIN_DISTANCE = 0.001           # 1mm: degenerate joint->tip / joint->target
IK_ALIGNED_EPSILON = 0.001        # rad: already aligned
IK_NEGLIGIBLE_CHANGE = 1e-4       # rad: change too small to apply
IK_STAGNATION_CHANGE = 0.005      # rad: summed sweep change that ends a solve

# Target marker
TARGET_MARKER_RADIUS = 0.01
TARGET_MARKER_COLOR = 0x00FF00
TARGET_MARKER_OPACITY = 0.8

# Scripted target animation: workspace box (X forward, Y up, Z side)
ANIM_WORKSPACE_MIN = (0.1, 0.1, -0.25)
ANIM_WORKSPACE_MAX = (0.45, 0.45, 0.25)
ANIM_TRANSITION_DURATION = 2.0    # seconds

# Frame timing
TARGET_FPS = 60
MAX_DELTA_TIME = 0.1  # Clamp dt to avoid large jumps
