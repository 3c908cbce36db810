"""
Configuration file for SwingSync
Modify paths and parameters here
"""

import os
from dataclasses import dataclass

# Project root directory
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Data directories
DATA_DIR = os.environ.get('SWINGSYNC_DATA_DIR', os.path.join(PROJECT_ROOT, 'data'))

# Model directories
MODELS_DIR = os.path.join(PROJECT_ROOT, 'models')
POSE_MODEL_PATH = os.environ.get(
    'SWINGSYNC_POSE_MODEL', os.path.join(MODELS_DIR, 'pose_landmarker_full.task'))

# MediaPipe Parameters
MEDIAPIPE_CONFIG = {
    'num_poses': 1,
    'min_detection_confidence': 0.5,
    'min_presence_confidence': 0.5,
    'min_tracking_confidence': 0.5
}


@dataclass(frozen=True)
class ExtractionOptions:
    """Knobs for one extraction run."""

    # Frame sampling
    frame_cap: int = 600
    rate_floor: float = 30.0
    native_ceiling: float = 60.0

    # Duration gates (seconds)
    hard_duration_limit: float = 60.0
    soft_duration_limit: float = 20.0

    # Per-frame seek + decode + detect budget (seconds)
    frame_timeout: float = 10.0

    # Foreground isolation
    isolation_enabled: bool = False
    isolation_stride: int = 10
    isolation_max_duration: float = 10.0

    # Below this share of successful samples the result is flagged degraded
    min_success_ratio: float = 0.3


@dataclass(frozen=True)
class RenderOptions:
    """Knobs for synchronized playback."""

    canonical_fps: float = 120.0
    visibility_threshold: float = 0.5
    background_dim: float = 50 / 255
    step_frames: int = 5
    joint_radius: int = 4
    line_thickness: int = 3
    impact_inset: int = 10

