"""
Kinematic Sequence - Segment angular velocity peaks

Tracks four segments through the swing:
    pelvis    hip line
    torso     shoulder line
    lead_arm  lead elbow -> lead wrist
    hands     lead wrist about the hip midpoint

Each angle trace is unwrapped, smoothed and differentiated against the
frame timestamps. Peak timing is reported relative to the reference frame
(positive = before it). An efficient swing peaks proximal to distal.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Tuple

import numpy as np
import pandas as pd
from scipy.ndimage import uniform_filter1d

from .angles import Handedness, SwingBiomechanics

logger = logging.getLogger(__name__)

SEGMENTS = ['pelvis', 'torso', 'lead_arm', 'hands']


@dataclass(frozen=True)
class SegmentPeak:
    segment: str
    peak_velocity: float
    peak_frame: int
    ms_before_reference: float


@dataclass(frozen=True)
class KinematicSequence:
    reference_frame: int
    peaks: Dict[str, SegmentPeak]

    @property
    def order(self) -> Tuple[str, ...]:
        """Segments sorted by peak time, earliest first."""
        ranked = sorted(self.peaks.values(), key=lambda p: -p.ms_before_reference)
        return tuple(p.segment for p in ranked)

    @property
    def is_proximal_to_distal(self) -> bool:
        expected = [s for s in SEGMENTS if s in self.peaks]
        return len(expected) > 1 and list(self.order) == expected

    def to_record(self) -> Dict:
        record = {'reference_frame': self.reference_frame, 'order': list(self.order)}
        for segment in SEGMENTS:
            peak = self.peaks.get(segment)
            record[f'{segment}_peak_velocity'] = None if peak is None else peak.peak_velocity
            record[f'{segment}_ms_before_reference'] = (
                None if peak is None else peak.ms_before_reference)
        return record


def segment_angle_series(sequence, handedness=Handedness.RIGHT,
                         visibility_threshold: float = 0.5) -> pd.DataFrame:
    """
    Per-frame segment angles in degrees (NaN where keypoints are not visible).
    """
    bio = SwingBiomechanics(handedness, visibility_threshold)
    rows = []
    for frame in sequence:
        hips = bio.points(frame, ('left_hip', 'right_hip'))
        wrist = bio.point(frame, 'lead_wrist')
        hands = None
        if hips is not None and wrist is not None:
            hands = bio.calculate_line_angle((hips[0] + hips[1]) / 2, wrist)
        rows.append({
            'frame': frame.frame_index,
            'timestamp': frame.timestamp,
            'pelvis': bio.line_angle(frame, 'left_hip', 'right_hip'),
            'torso': bio.line_angle(frame, 'left_shoulder', 'right_shoulder'),
            'lead_arm': bio.line_angle(frame, 'lead_elbow', 'lead_wrist'),
            'hands': hands
        })
    df = pd.DataFrame(rows, columns=['frame', 'timestamp'] + SEGMENTS)
    return df.astype({segment: float for segment in SEGMENTS})


def angular_velocity(timestamps: np.ndarray, angles: np.ndarray,
                     smoothing: int = 3) -> np.ndarray:
    """Absolute angular velocity (deg/s) of an angle trace."""
    unwrapped = np.degrees(np.unwrap(np.radians(angles)))
    if smoothing > 1 and len(unwrapped) >= smoothing:
        unwrapped = uniform_filter1d(unwrapped, size=smoothing, mode='nearest')
    if len(unwrapped) < 2:
        return np.zeros_like(unwrapped)
    return np.abs(np.gradient(unwrapped, timestamps))


def kinematic_sequence(sequence, reference_frame_index: int, handedness=Handedness.RIGHT,
                       visibility_threshold: float = 0.5,
                       smoothing: int = 3) -> KinematicSequence:
    """
    Peak angular velocity and timing per segment.

    Args:
        sequence: SkeletonSequence
        reference_frame_index: frame_index of the reference (impact) frame
        handedness: Picks the lead arm
        visibility_threshold: Minimum keypoint visibility
        smoothing: uniform_filter1d window over the unwrapped angles

    Returns:
        KinematicSequence; segments with fewer than 3 usable frames are omitted
    """
    angles = segment_angle_series(sequence, handedness, visibility_threshold)
    reference = sequence.frame_at(reference_frame_index)
    if reference is not None:
        reference_time = reference.timestamp
    else:
        reference_time = reference_frame_index / sequence.fps

    peaks = {}
    for segment in SEGMENTS:
        usable = angles[['frame', 'timestamp', segment]].dropna()
        if len(usable) < 3:
            logger.debug("Segment %s: only %d usable frames", segment, len(usable))
            continue
        velocity = angular_velocity(usable['timestamp'].to_numpy(),
                                    usable[segment].to_numpy(), smoothing)
        peak = int(np.argmax(velocity))
        peak_time = float(usable['timestamp'].iloc[peak])
        peaks[segment] = SegmentPeak(
            segment=segment,
            peak_velocity=float(velocity[peak]),
            peak_frame=int(usable['frame'].iloc[peak]),
            ms_before_reference=(reference_time - peak_time) * 1000.0
        )
    return KinematicSequence(reference_frame_index, peaks)
