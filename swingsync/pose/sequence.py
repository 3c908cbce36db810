"""
Skeleton Data Model
===================
Keypoint, SkeletonFrame and SkeletonSequence, plus their plain-record and
tabular (pandas) forms for external persistence.

Coordinates are frame pixels; z is MediaPipe's relative depth.
"""

import math
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from ..constants import LANDMARK_NAMES, LANDMARK_INDICES, NUM_LANDMARKS
from ..errors import InputRejectedError

logger = logging.getLogger(__name__)

KEYPOINT_FIELDS = ('x', 'y', 'z', 'visibility')


@dataclass(frozen=True)
class Keypoint:
    """One labelled body landmark."""

    x: float
    y: float
    z: float
    visibility: float
    name: str

    @classmethod
    def missing(cls, name: str) -> 'Keypoint':
        return cls(math.nan, math.nan, math.nan, 0.0, name)

    @property
    def is_missing(self) -> bool:
        return math.isnan(self.x) or math.isnan(self.y)

    def is_visible(self, threshold: float = 0.5) -> bool:
        return not self.is_missing and self.visibility >= threshold

    def xy(self) -> np.ndarray:
        return np.array([self.x, self.y], dtype=float)


def keypoints_from_rows(rows: Iterable[Sequence[float]]) -> Tuple[Keypoint, ...]:
    """
    Build the ordered 33-keypoint tuple from (x, y, z, visibility) rows.

    Rows that are None or contain NaN coordinates become missing keypoints.
    """
    keypoints = []
    for name, row in zip(LANDMARK_NAMES, rows):
        if row is None or any(v is None for v in row[:2]):
            keypoints.append(Keypoint.missing(name))
            continue
        x, y, z, visibility = (float(v) if v is not None else math.nan for v in row)
        if math.isnan(visibility):
            visibility = 0.0
        keypoints.append(Keypoint(x, y, z, visibility, name))
    return tuple(keypoints)


@dataclass(frozen=True)
class SkeletonFrame:
    """Keypoints detected at one sampled timestamp."""

    frame_index: int
    timestamp: float
    keypoints: Tuple[Keypoint, ...]

    def __post_init__(self):
        keypoints = tuple(self.keypoints)
        if len(keypoints) != NUM_LANDMARKS:
            raise ValueError(f"Expected {NUM_LANDMARKS} keypoints, got {len(keypoints)}")
        for kp, name in zip(keypoints, LANDMARK_NAMES):
            if kp.name != name:
                raise ValueError(f"Keypoint order broken: expected '{name}', got '{kp.name}'")
        if self.frame_index < 0:
            raise ValueError(f"frame_index must be >= 0, got {self.frame_index}")
        object.__setattr__(self, 'keypoints', keypoints)

    def __getitem__(self, key) -> Keypoint:
        if isinstance(key, str):
            return self.keypoints[LANDMARK_INDICES[key]]
        return self.keypoints[key]

    def all_visible(self, names: Iterable[str], threshold: float = 0.5) -> bool:
        return all(self[name].is_visible(threshold) for name in names)

    def to_array(self) -> np.ndarray:
        """(33, 4) array of x, y, z, visibility."""
        return np.array([[kp.x, kp.y, kp.z, kp.visibility] for kp in self.keypoints],
                        dtype=float)

    def with_keypoints(self, keypoints: Iterable[Keypoint]) -> 'SkeletonFrame':
        return SkeletonFrame(self.frame_index, self.timestamp, tuple(keypoints))

    def with_index(self, frame_index: int) -> 'SkeletonFrame':
        return SkeletonFrame(frame_index, self.timestamp, self.keypoints)


class SkeletonSequence:
    """
    Ordered skeleton frames at a declared nominal rate.

    frame_index strictly increases and timestamp stays within half a frame
    of frame_index / fps. Gaps are allowed. Instances are read-only once built.
    """

    def __init__(self, frames: Iterable[SkeletonFrame], fps: float):
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        self._fps = float(fps)
        self._frames = tuple(frames)

        tolerance = 0.5 / self._fps + 1e-6
        previous = -1
        for frame in self._frames:
            if frame.frame_index <= previous:
                raise ValueError(
                    f"frame_index must strictly increase ({previous} -> {frame.frame_index})")
            expected = frame.frame_index / self._fps
            if abs(frame.timestamp - expected) > tolerance:
                raise ValueError(
                    f"Frame {frame.frame_index} timestamp {frame.timestamp:.4f}s is off "
                    f"its nominal {expected:.4f}s at {self._fps} fps")
            previous = frame.frame_index

        self._by_index = {frame.frame_index: frame for frame in self._frames}

    @property
    def fps(self) -> float:
        return self._fps

    @property
    def frames(self) -> Tuple[SkeletonFrame, ...]:
        return self._frames

    @property
    def indices(self) -> List[int]:
        return [frame.frame_index for frame in self._frames]

    def __len__(self):
        return len(self._frames)

    def __iter__(self) -> Iterator[SkeletonFrame]:
        return iter(self._frames)

    def __repr__(self):
        return f"SkeletonSequence(frames={len(self._frames)}, fps={self._fps:g})"

    def frame_at(self, frame_index: int) -> Optional[SkeletonFrame]:
        """Exact lookup; None when the index is a gap."""
        return self._by_index.get(frame_index)

    def average_visibility(self) -> float:
        """Mean keypoint visibility over every frame (0.0 for an empty sequence)."""
        if not self._frames:
            return 0.0
        values = [kp.visibility for frame in self._frames for kp in frame.keypoints]
        return float(np.mean(values))

    # ============================================
    # RE-INDEXING AND SCALING
    # ============================================

    def reindexed(self, fps: float) -> 'SkeletonSequence':
        """
        Move every frame to round(timestamp * fps) at the new rate.

        No interpolation: a frame keeps its own keypoints and timestamp.
        When two frames land on one index the earlier one is kept.
        """
        frames = []
        taken = set()
        for frame in self._frames:
            index = int(round(frame.timestamp * fps))
            if index in taken:
                logger.debug("Dropping frame %d: index %d already taken at %g fps",
                             frame.frame_index, index, fps)
                continue
            taken.add(index)
            frames.append(frame.with_index(index))
        return SkeletonSequence(frames, fps)

    def scaled_to(self, other: 'SkeletonSequence',
                  threshold: float = 0.5) -> 'SkeletonSequence':
        """
        Scale and translate this (model) sequence onto another (subject) one.

        Body height is hip midpoint to nose, measured on the first frame of
        each sequence where hips and nose are visible. The result shares
        this sequence's indices and timestamps. Returns self unchanged when
        either sequence has no usable reference frame.
        """
        own = _body_reference(self, threshold)
        target = _body_reference(other, threshold)
        if own is None or target is None:
            logger.warning("Cannot scale sequence: no frame with visible hips and nose")
            return self

        own_pelvis, own_height = own
        target_pelvis, target_height = target
        scale = target_height / own_height if own_height > 0 else 1.0

        frames = []
        for frame in self._frames:
            moved = []
            for kp in frame.keypoints:
                if kp.is_missing:
                    moved.append(kp)
                    continue
                x = target_pelvis[0] + (kp.x - own_pelvis[0]) * scale
                y = target_pelvis[1] + (kp.y - own_pelvis[1]) * scale
                moved.append(Keypoint(x, y, kp.z, kp.visibility, kp.name))
            frames.append(frame.with_keypoints(moved))
        return SkeletonSequence(frames, self._fps)

    # ============================================
    # SERIALIZATION
    # ============================================

    def to_records(self) -> Dict:
        """Plain JSON-able dict. Missing coordinates become None."""
        return {
            'fps': self._fps,
            'frames': [
                {
                    'frame': frame.frame_index,
                    'timestamp': frame.timestamp,
                    'keypoints': [
                        {
                            'x': None if kp.is_missing else kp.x,
                            'y': None if kp.is_missing else kp.y,
                            'z': None if math.isnan(kp.z) else kp.z,
                            'visibility': kp.visibility,
                            'name': kp.name
                        }
                        for kp in frame.keypoints
                    ]
                }
                for frame in self._frames
            ]
        }

    @classmethod
    def from_records(cls, records: Dict) -> 'SkeletonSequence':
        frames = []
        for item in records['frames']:
            by_name = {kp['name']: kp for kp in item['keypoints']}
            rows = []
            for name in LANDMARK_NAMES:
                kp = by_name.get(name)
                if kp is None:
                    rows.append(None)
                else:
                    rows.append((kp.get('x'), kp.get('y'), kp.get('z'), kp.get('visibility', 1.0)))
            frames.append(SkeletonFrame(int(item['frame']), float(item['timestamp']),
                                        keypoints_from_rows(rows)))
        return cls(frames, records['fps'])

    def to_dataframe(self) -> pd.DataFrame:
        """One row per frame: frame, timestamp, fps, {landmark}_{x|y|z|visibility}."""
        columns = ['frame', 'timestamp', 'fps']
        for name in LANDMARK_NAMES:
            columns.extend(f'{name}_{field}' for field in KEYPOINT_FIELDS)

        rows = []
        for frame in self._frames:
            row = [frame.frame_index, frame.timestamp, self._fps]
            row.extend(frame.to_array().ravel().tolist())
            rows.append(row)

        df = pd.DataFrame(rows, columns=columns)
        df['frame'] = df['frame'].astype(int)
        return df

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, fps: Optional[float] = None) -> 'SkeletonSequence':
        """
        Inverse of to_dataframe.

        Args:
            df: Frame table as written by to_dataframe
            fps: Nominal rate; read from the fps column when omitted, or inferred
                from the first and last rows for tables without one

        Returns:
            SkeletonSequence

        Raises:
            InputRejectedError: no usable rate in the table
        """
        if fps is None:
            fps = _table_fps(df)

        frames = []
        for _, row in df.iterrows():
            rows = []
            for name in LANDMARK_NAMES:
                values = [row[f'{name}_{field}'] for field in KEYPOINT_FIELDS]
                rows.append(None if pd.isna(values[0]) or pd.isna(values[1]) else values)
            frames.append(SkeletonFrame(int(row['frame']), float(row['timestamp']),
                                        keypoints_from_rows(rows)))
        return cls(frames, fps)

    def to_csv(self, path):
        self.to_dataframe().to_csv(path, index=False)

    @classmethod
    def read_csv(cls, path, fps: Optional[float] = None) -> 'SkeletonSequence':
        return cls.from_dataframe(pd.read_csv(path), fps=fps)


def _body_reference(sequence: SkeletonSequence, threshold: float):
    """(pelvis_xy, height) from the first frame with visible hips and nose."""
    for frame in sequence:
        if frame.all_visible(['left_hip', 'right_hip', 'nose'], threshold):
            pelvis = (frame['left_hip'].xy() + frame['right_hip'].xy()) / 2
            height = float(np.linalg.norm(frame['nose'].xy() - pelvis))
            return pelvis, height
    return None


def _table_fps(df: pd.DataFrame) -> float:
    if 'fps' in df.columns and df['fps'].notna().any():
        return float(df['fps'].dropna().iloc[0])

    guidance = 'Re-export the sequence with this version, which stores the frame rate.'
    if len(df) < 2:
        raise InputRejectedError("Pose table has no fps column and fewer than two frames",
                                 guidance=guidance)
    span = float(df['timestamp'].iloc[-1] - df['timestamp'].iloc[0])
    frames = float(df['frame'].iloc[-1] - df['frame'].iloc[0])
    if span <= 0 or frames <= 0:
        raise InputRejectedError("Pose table has no fps column and no usable time span",
                                 guidance=guidance)
    return frames / span
