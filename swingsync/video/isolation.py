"""
Foreground Isolation
====================
Separates the athlete from the background on a subsample of frames.

Masks are stored as one coverage byte per pixel (0 = background,
255 = athlete), usually at a fraction of the source resolution, so a
whole run of masks stays small.

The default KeypointIsolator uses the detected skeleton as a prior:
limb capsules and the torso polygon seed a GrabCut refinement.
"""

import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict

import cv2
import numpy as np

from ..constants import LANDMARK_NAMES, SKELETON_EDGES, TORSO_LANDMARKS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned box in source-frame pixels."""

    x: int
    y: int
    width: int
    height: int

    def as_tuple(self):
        return (self.x, self.y, self.width, self.height)


@dataclass(frozen=True)
class IsolationMask:
    frame_index: int
    width: int
    height: int
    mask: bytes
    bounding_box: BoundingBox

    def __post_init__(self):
        data = bytes(self.mask)
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Mask size must be positive, got {self.width}x{self.height}")
        if len(data) != self.width * self.height:
            raise ValueError(
                f"Mask buffer holds {len(data)} bytes, expected {self.width * self.height}")
        object.__setattr__(self, 'mask', data)

    @classmethod
    def from_array(cls, frame_index: int, array: np.ndarray,
                   bounding_box: BoundingBox) -> 'IsolationMask':
        array = np.ascontiguousarray(array, dtype=np.uint8)
        if array.ndim != 2:
            raise ValueError(f"Mask array must be 2-D, got shape {array.shape}")
        height, width = array.shape
        return cls(frame_index, width, height, array.tobytes(), bounding_box)

    def as_array(self) -> np.ndarray:
        """Read-only (height, width) uint8 view of the buffer."""
        return np.frombuffer(self.mask, dtype=np.uint8).reshape(self.height, self.width)

    @property
    def nbytes(self) -> int:
        return len(self.mask)

    @property
    def coverage(self) -> float:
        """Share of pixels marked as foreground."""
        return float(np.count_nonzero(self.as_array() >= 128)) / self.nbytes

    def with_index(self, frame_index: int) -> 'IsolationMask':
        return IsolationMask(frame_index, self.width, self.height, self.mask, self.bounding_box)

    def to_record(self) -> Dict:
        return {
            'frame': self.frame_index,
            'width': self.width,
            'height': self.height,
            'mask': base64.b64encode(self.mask).decode('ascii'),
            'bounding_box': list(self.bounding_box.as_tuple())
        }

    @classmethod
    def from_record(cls, record: Dict) -> 'IsolationMask':
        return cls(
            frame_index=int(record['frame']),
            width=int(record['width']),
            height=int(record['height']),
            mask=base64.b64decode(record['mask']),
            bounding_box=BoundingBox(*(int(v) for v in record['bounding_box']))
        )


class ForegroundIsolator(ABC):
    """Pluggable isolation capability."""

    @abstractmethod
    def isolate(self, frame: np.ndarray, skeleton) -> IsolationMask:
        """
        Build the athlete mask for one frame.

        Args:
            frame: BGR image at source resolution
            skeleton: SkeletonFrame detected on that image

        Returns:
            IsolationMask tagged with skeleton.frame_index

        Raises:
            Any exception; the extraction pipeline turns it into "no mask".
        """
        raise NotImplementedError


class KeypointIsolator(ForegroundIsolator):
    """
    Skeleton-seeded segmentation.

    Args:
        mask_scale: Mask resolution as a fraction of the source frame
        visibility_threshold: Minimum visibility for a keypoint to seed the mask
        limb_width_ratio: Limb capsule thickness relative to torso size
        refine: Run GrabCut on top of the skeleton prior
        grabcut_iterations: GrabCut iterations when refining
    """

    def __init__(self, mask_scale=0.25, visibility_threshold=0.5, limb_width_ratio=0.35,
                 refine=True, grabcut_iterations=2):
        if not 0 < mask_scale <= 1:
            raise ValueError(f"mask_scale must be in (0, 1], got {mask_scale}")
        self.mask_scale = mask_scale
        self.visibility_threshold = visibility_threshold
        self.limb_width_ratio = limb_width_ratio
        self.refine = refine
        self.grabcut_iterations = grabcut_iterations

    def isolate(self, frame: np.ndarray, skeleton) -> IsolationMask:
        src_h, src_w = frame.shape[:2]
        mask_w = max(1, int(round(src_w * self.mask_scale)))
        mask_h = max(1, int(round(src_h * self.mask_scale)))
        sx, sy = mask_w / src_w, mask_h / src_h

        points = {}
        for kp in skeleton.keypoints:
            if kp.is_visible(self.visibility_threshold):
                points[kp.name] = (int(round(kp.x * sx)), int(round(kp.y * sy)))

        torso = [points[name] for name in TORSO_LANDMARKS if name in points]
        if len(torso) < 2:
            raise ValueError(
                f"Frame {skeleton.frame_index}: fewer than two visible torso keypoints")

        prior = self._skeleton_prior(points, torso, (mask_h, mask_w))
        if self.refine:
            small = cv2.resize(frame, (mask_w, mask_h), interpolation=cv2.INTER_AREA)
            mask = self._grabcut(small, prior)
        else:
            mask = prior

        if not mask.any():
            raise ValueError(f"Frame {skeleton.frame_index}: empty foreground mask")

        x, y, w, h = cv2.boundingRect(mask)
        bbox = BoundingBox(int(x / sx), int(y / sy),
                           int(np.ceil(w / sx)), int(np.ceil(h / sy)))
        return IsolationMask.from_array(skeleton.frame_index, mask, bbox)

    def _skeleton_prior(self, points, torso, shape) -> np.ndarray:
        """Limb capsules + torso polygon + head disc at mask resolution."""
        prior = np.zeros(shape, dtype=np.uint8)

        torso_arr = np.array(torso, dtype=np.int32)
        extent = max(np.ptp(torso_arr[:, 0]), np.ptp(torso_arr[:, 1]), 1)
        thickness = max(3, int(extent * self.limb_width_ratio))

        if len(torso) >= 3:
            hull = cv2.convexHull(torso_arr)
            cv2.fillConvexPoly(prior, hull, 255)

        for start, end in SKELETON_EDGES:
            a, b = LANDMARK_NAMES[start], LANDMARK_NAMES[end]
            if a in points and b in points:
                cv2.line(prior, points[a], points[b], 255, thickness)

        if 'nose' in points:
            cv2.circle(prior, points['nose'], thickness, 255, -1)

        logger.debug("Isolation prior from %d keypoints, limb thickness %d",
                     len(points), thickness)
        return prior

    def _grabcut(self, image: np.ndarray, prior: np.ndarray) -> np.ndarray:
        kernel_size = max(3, (min(prior.shape) // 20) | 1)
        kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (kernel_size, kernel_size))
        sure_fg = cv2.erode(prior, kernel)
        probable = cv2.dilate(prior, kernel, iterations=2)

        gc_mask = np.full(prior.shape, cv2.GC_BGD, dtype=np.uint8)
        gc_mask[probable > 0] = cv2.GC_PR_FGD
        gc_mask[sure_fg > 0] = cv2.GC_FGD

        # GrabCut needs samples of both classes
        if not (gc_mask == cv2.GC_BGD).any() or not (gc_mask == cv2.GC_FGD).any():
            return prior

        bgd_model = np.zeros((1, 65), np.float64)
        fgd_model = np.zeros((1, 65), np.float64)
        cv2.grabCut(image, gc_mask, None, bgd_model, fgd_model,
                    self.grabcut_iterations, cv2.GC_INIT_WITH_MASK)
        refined = np.where((gc_mask == cv2.GC_FGD) | (gc_mask == cv2.GC_PR_FGD), 255, 0)
        return refined.astype(np.uint8)


def masks_by_index(masks) -> Dict[int, IsolationMask]:
    """Index a mask list by frame_index for per-tick lookup."""
    return {mask.frame_index: mask for mask in (masks or [])}
