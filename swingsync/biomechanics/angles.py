"""
Swing Biomechanics - Reference-frame kinematic metrics

Every metric is defined by a fixed set of keypoints and the frame(s) it
reads. When any required keypoint is below the visibility threshold at a
needed frame the metric is None (unavailable), never a numeric default.

Side-neutral keypoint names ('lead_wrist', 'trail_elbow', ...) resolve by
handedness: a right-handed hitter leads with the left side.
"""

import math
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)


class Handedness(Enum):
    RIGHT = 'right'
    LEFT = 'left'

    @property
    def lead_side(self) -> str:
        return 'left' if self is Handedness.RIGHT else 'right'

    @property
    def trail_side(self) -> str:
        return 'right' if self is Handedness.RIGHT else 'left'

    @classmethod
    def parse(cls, value) -> 'Handedness':
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


class MetricCategory(Enum):
    MOTION = 'motion'
    STABILITY = 'stability'
    SEQUENCING = 'sequencing'


@dataclass(frozen=True)
class MetricDefinition:
    key: str
    category: MetricCategory
    unit: str
    keypoints: Tuple[str, ...]
    description: str


class Metric(Enum):
    """Closed set of comparison metrics. Category is fixed per member."""

    BAT_SPEED = MetricDefinition(
        'bat_speed', MetricCategory.SEQUENCING, 'deg/s',
        ('lead_wrist', 'left_hip', 'right_hip'),
        'Angular speed of the lead wrist about the hip midpoint into the reference frame')
    HAND_SPEED = MetricDefinition(
        'hand_speed', MetricCategory.SEQUENCING, 'px/s',
        ('lead_wrist',),
        'Linear speed of the lead wrist into the reference frame')
    HIP_ROTATION = MetricDefinition(
        'hip_rotation', MetricCategory.MOTION, 'deg',
        ('left_hip', 'right_hip'),
        'Hip-line angle at the reference frame relative to setup')
    PEAK_HIP_ROTATION = MetricDefinition(
        'peak_hip_rotation', MetricCategory.MOTION, 'deg',
        ('left_hip', 'right_hip'),
        'Largest hip-line rotation from setup over the whole swing')
    SHOULDER_ROTATION = MetricDefinition(
        'shoulder_rotation', MetricCategory.MOTION, 'deg',
        ('left_shoulder', 'right_shoulder'),
        'Shoulder-line angle at the reference frame relative to setup')
    HIP_SHOULDER_SEPARATION = MetricDefinition(
        'hip_shoulder_separation', MetricCategory.MOTION, 'deg',
        ('left_hip', 'right_hip', 'left_shoulder', 'right_shoulder'),
        'Angle between shoulder line and hip line at the reference frame')
    FRONT_KNEE_ANGLE = MetricDefinition(
        'front_knee_angle', MetricCategory.STABILITY, 'deg',
        ('lead_hip', 'lead_knee', 'lead_ankle'),
        'Lead-leg hip-knee-ankle interior angle (180 = straight)')
    LEAD_ELBOW_ANGLE = MetricDefinition(
        'lead_elbow_angle', MetricCategory.MOTION, 'deg',
        ('lead_shoulder', 'lead_elbow', 'lead_wrist'),
        'Lead-arm shoulder-elbow-wrist interior angle')
    TRAIL_ELBOW_ANGLE = MetricDefinition(
        'trail_elbow_angle', MetricCategory.MOTION, 'deg',
        ('trail_shoulder', 'trail_elbow', 'trail_wrist'),
        'Trail-arm shoulder-elbow-wrist interior angle')

    @property
    def key(self) -> str:
        return self.value.key

    @property
    def category(self) -> MetricCategory:
        return self.value.category

    @property
    def unit(self) -> str:
        return self.value.unit

    @classmethod
    def from_key(cls, key: str) -> 'Metric':
        for metric in cls:
            if metric.key == key:
                return metric
        raise KeyError(f"Unknown metric: {key}")


def resolve_side(name: str, handedness: Handedness) -> str:
    """'lead_wrist' -> 'left_wrist' for a right-handed hitter."""
    if name.startswith('lead_'):
        return f"{handedness.lead_side}_{name[len('lead_'):]}"
    if name.startswith('trail_'):
        return f"{handedness.trail_side}_{name[len('trail_'):]}"
    return name


def wrap_degrees(angle: float) -> float:
    """Wrap to (-180, 180]."""
    wrapped = (angle + 180.0) % 360.0 - 180.0
    return 180.0 if wrapped == -180.0 else wrapped


@dataclass(frozen=True)
class MetricSet:
    reference_frame: int
    handedness: Handedness
    values: Dict[Metric, Optional[float]]

    def __getitem__(self, metric) -> Optional[float]:
        if isinstance(metric, str):
            metric = Metric.from_key(metric)
        return self.values[metric]

    def is_available(self, metric) -> bool:
        return self[metric] is not None

    def available(self) -> Dict[str, float]:
        return {m.key: v for m, v in self.values.items() if v is not None}

    def unavailable(self) -> List[str]:
        return [m.key for m, v in self.values.items() if v is None]

    def to_record(self) -> Dict:
        """Flat record; unavailable metrics are None."""
        record = {'reference_frame': self.reference_frame,
                  'handedness': self.handedness.value}
        record.update({m.key: self.values.get(m) for m in Metric})
        return record

    @classmethod
    def from_record(cls, record: Dict) -> 'MetricSet':
        values = {m: (None if record.get(m.key) is None else float(record[m.key]))
                  for m in Metric}
        return cls(int(record['reference_frame']), Handedness.parse(record['handedness']), values)


class SwingBiomechanics:
    """
    Compute reference-frame metrics from a SkeletonSequence.

    Args:
        handedness: Hitter handedness, picks lead/trail sides
        visibility_threshold: Minimum keypoint visibility to use a point
        speed_window: Frames before the reference frame considered for speeds
        speed_pairs: Trailing frame pairs averaged into bat speed
    """

    def __init__(self, handedness=Handedness.RIGHT, visibility_threshold: float = 0.5,
                 speed_window: int = 5, speed_pairs: int = 3):
        self.handedness = Handedness.parse(handedness)
        self.visibility_threshold = visibility_threshold
        self.speed_window = speed_window
        self.speed_pairs = speed_pairs

    # ============================================
    # CORE ANGLE CALCULATIONS
    # ============================================

    def calculate_angle_3points(self, p1: np.ndarray, p2: np.ndarray, p3: np.ndarray) -> float:
        """
        Calculate angle at p2 given three points.

        Args:
            p1, p2, p3: Points as [x, y] arrays

        Returns:
            Angle in degrees (0-180)
        """
        v1 = np.asarray(p1[:2], dtype=float) - np.asarray(p2[:2], dtype=float)
        v2 = np.asarray(p3[:2], dtype=float) - np.asarray(p2[:2], dtype=float)

        cos_angle = np.dot(v1, v2) / (np.linalg.norm(v1) * np.linalg.norm(v2) + 1e-8)
        return float(np.degrees(np.arccos(np.clip(cos_angle, -1, 1))))

    def calculate_line_angle(self, p1: np.ndarray, p2: np.ndarray) -> float:
        """
        Calculate angle of line from horizontal.

        Returns:
            Angle in degrees (-180 to 180)
        """
        return math.degrees(math.atan2(p2[1] - p1[1], p2[0] - p1[0]))

    # ============================================
    # KEYPOINT ACCESS
    # ============================================

    def point(self, frame, name: str) -> Optional[np.ndarray]:
        """Pixel position of a (side-neutral) keypoint, or None if not visible."""
        if frame is None:
            return None
        kp = frame[resolve_side(name, self.handedness)]
        if not kp.is_visible(self.visibility_threshold):
            return None
        return kp.xy()

    def points(self, frame, names: Sequence[str]) -> Optional[List[np.ndarray]]:
        found = [self.point(frame, name) for name in names]
        if any(p is None for p in found):
            return None
        return found

    def joint_angle(self, frame, a: str, b: str, c: str) -> Optional[float]:
        pts = self.points(frame, (a, b, c))
        return None if pts is None else self.calculate_angle_3points(*pts)

    def line_angle(self, frame, a: str, b: str) -> Optional[float]:
        pts = self.points(frame, (a, b))
        return None if pts is None else self.calculate_line_angle(*pts)

    # ============================================
    # METRIC GETTERS
    # ============================================

    def get_rotation(self, frame, setup, a: str, b: str) -> Optional[float]:
        """Absolute change of the a->b line angle between setup and frame."""
        now = self.line_angle(frame, a, b)
        start = self.line_angle(setup, a, b)
        if now is None or start is None:
            return None
        return abs(wrap_degrees(now - start))

    def get_hip_rotation(self, frame, setup) -> Optional[float]:
        return self.get_rotation(frame, setup, 'left_hip', 'right_hip')

    def get_shoulder_rotation(self, frame, setup) -> Optional[float]:
        return self.get_rotation(frame, setup, 'left_shoulder', 'right_shoulder')

    def get_peak_hip_rotation(self, sequence, frame, setup) -> Optional[float]:
        if self.get_hip_rotation(frame, setup) is None:
            return None
        rotations = [self.get_hip_rotation(f, setup) for f in sequence]
        return max(r for r in rotations if r is not None)

    def get_separation(self, frame) -> Optional[float]:
        shoulders = self.line_angle(frame, 'left_shoulder', 'right_shoulder')
        hips = self.line_angle(frame, 'left_hip', 'right_hip')
        if shoulders is None or hips is None:
            return None
        return abs(wrap_degrees(shoulders - hips))

    def get_wrist_speeds(self, sequence, frame) -> Tuple[List[float], List[float]]:
        """
        Lead-wrist speeds between consecutive usable frames in the window
        ending at `frame`.

        Returns:
            (angular speeds about the hip midpoint in deg/s, linear speeds in px/s)
        """
        start = frame.frame_index - self.speed_window
        usable = []
        for f in sequence:
            if start <= f.frame_index <= frame.frame_index:
                wrist = self.point(f, 'lead_wrist')
                if wrist is None:
                    continue
                hips = self.points(f, ('left_hip', 'right_hip'))
                pivot = None if hips is None else (hips[0] + hips[1]) / 2
                usable.append((f.timestamp, wrist, pivot))

        angular, linear = [], []
        for (t1, w1, c1), (t2, w2, c2) in zip(usable, usable[1:]):
            dt = t2 - t1
            if dt <= 0:
                continue
            linear.append(float(np.linalg.norm(w2 - w1)) / dt)
            if c1 is not None and c2 is not None:
                theta1 = self.calculate_line_angle(c1, w1)
                theta2 = self.calculate_line_angle(c2, w2)
                angular.append(abs(wrap_degrees(theta2 - theta1)) / dt)
        return angular, linear

    # ============================================
    # FULL ANALYSIS
    # ============================================

    def analyze(self, sequence, reference_frame_index: int) -> MetricSet:
        """
        Compute every Metric at one reference frame.

        Args:
            sequence: SkeletonSequence
            reference_frame_index: frame_index of the reference (impact) frame

        Returns:
            MetricSet; unavailable metrics are None
        """
        values = {metric: None for metric in Metric}
        frame = sequence.frame_at(reference_frame_index)
        if frame is None or len(sequence) == 0:
            logger.warning("Reference frame %d is not in the sequence; all metrics unavailable",
                           reference_frame_index)
            return MetricSet(reference_frame_index, self.handedness, values)

        setup = sequence.frames[0]

        lead_wrist = self.point(frame, 'lead_wrist')
        hips = self.points(frame, ('left_hip', 'right_hip'))
        if lead_wrist is not None:
            angular, linear = self.get_wrist_speeds(sequence, frame)
            if angular and hips is not None:
                values[Metric.BAT_SPEED] = float(np.mean(angular[-self.speed_pairs:]))
            if linear:
                values[Metric.HAND_SPEED] = float(np.mean(linear[-self.speed_pairs:]))

        values[Metric.HIP_ROTATION] = self.get_hip_rotation(frame, setup)
        values[Metric.PEAK_HIP_ROTATION] = self.get_peak_hip_rotation(sequence, frame, setup)
        values[Metric.SHOULDER_ROTATION] = self.get_shoulder_rotation(frame, setup)
        values[Metric.HIP_SHOULDER_SEPARATION] = self.get_separation(frame)
        values[Metric.FRONT_KNEE_ANGLE] = self.joint_angle(
            frame, 'lead_hip', 'lead_knee', 'lead_ankle')
        values[Metric.LEAD_ELBOW_ANGLE] = self.joint_angle(
            frame, 'lead_shoulder', 'lead_elbow', 'lead_wrist')
        values[Metric.TRAIL_ELBOW_ANGLE] = self.joint_angle(
            frame, 'trail_shoulder', 'trail_elbow', 'trail_wrist')

        missing = [m.key for m, v in values.items() if v is None]
        if missing:
            logger.debug("Frame %d: unavailable metrics %s", reference_frame_index, missing)
        return MetricSet(reference_frame_index, self.handedness, values)

    def frame_metrics(self, sequence) -> pd.DataFrame:
        """
        Per-frame angle table (NaN where unavailable), one row per frame.

        Rotations are relative to the first frame.
        """
        rows = []
        setup = sequence.frames[0] if len(sequence) else None
        for frame in sequence:
            row = {
                'frame': frame.frame_index,
                'timestamp': frame.timestamp,
                'hip_rotation': self.get_hip_rotation(frame, setup),
                'shoulder_rotation': self.get_shoulder_rotation(frame, setup),
                'hip_shoulder_separation': self.get_separation(frame),
                'front_knee_angle': self.joint_angle(frame, 'lead_hip', 'lead_knee', 'lead_ankle'),
                'lead_elbow_angle': self.joint_angle(
                    frame, 'lead_shoulder', 'lead_elbow', 'lead_wrist'),
                'trail_elbow_angle': self.joint_angle(
                    frame, 'trail_shoulder', 'trail_elbow', 'trail_wrist'),
            }
            rows.append({k: (np.nan if v is None else v) for k, v in row.items()})
        return pd.DataFrame(rows, columns=['frame', 'timestamp', 'hip_rotation',
                                           'shoulder_rotation', 'hip_shoulder_separation',
                                           'front_knee_angle', 'lead_elbow_angle',
                                           'trail_elbow_angle'])


def analyze(sequence, reference_frame_index: int, handedness=Handedness.RIGHT,
            visibility_threshold: float = 0.5) -> MetricSet:
    return SwingBiomechanics(handedness, visibility_threshold).analyze(
        sequence, reference_frame_index)
