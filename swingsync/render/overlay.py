"""
Dual-Sequence Synchronizer & Renderer
=====================================
Draws a model and a subject skeleton over the video at one play-head time.

Synchronization: the play head t maps to a canonical frame index at the
declared rendering rate, and each sequence contributes the frame with
exactly that index or nothing. Sequences must be moved onto the canonical
index domain first (align_to_canonical).

render() is a pure function of its arguments: identical inputs give
pixel-identical output, and nothing is cached between calls. A failure
while drawing one element skips that element only.
"""

import math
import logging
from enum import Enum
from typing import Dict, Optional, Sequence, Tuple

import cv2
import numpy as np

from ..config import RenderOptions
from ..constants import (SKELETON_EDGES, MODEL_COLOR_BGR, SUBJECT_COLOR_BGR,
                         IMPACT_COLOR_BGR, LABEL_TEXT_BGR, LABEL_BACKING_BGR,
                         DIVIDER_COLOR_BGR)
from ..video.isolation import IsolationMask, masks_by_index

logger = logging.getLogger(__name__)

_INDEX_EPSILON = 1e-6

SKELETON_JOINTS = sorted({idx for edge in SKELETON_EDGES for idx in edge})


class RenderMode(Enum):
    OVERLAY = 'overlay'
    SPLIT = 'split'


def canonical_index(t: float, canonical_fps: float = 120.0) -> int:
    """Play-head seconds -> canonical frame index."""
    return max(0, int(math.floor(t * canonical_fps + _INDEX_EPSILON)))


def align_to_canonical(sequence, masks: Optional[Sequence[IsolationMask]] = None,
                       canonical_fps: float = 120.0):
    """
    Move a capture-rate sequence and its masks onto the canonical index domain.

    Args:
        sequence: SkeletonSequence at its sampling rate
        masks: IsolationMasks indexed in the same domain as `sequence`
        canonical_fps: Declared rendering rate

    Returns:
        (SkeletonSequence, List[IsolationMask]) at canonical_fps
    """
    aligned = sequence.reindexed(canonical_fps)
    moved = []
    taken = set()
    for mask in masks or []:
        index = int(round(mask.frame_index / sequence.fps * canonical_fps))
        if index not in taken:
            taken.add(index)
            moved.append(mask.with_index(index))
    return aligned, moved


class SkeletonRenderer:
    """
    Args:
        options: RenderOptions (defaults if None)
        model_color: BGR colour of the model skeleton
        subject_color: BGR colour of the subject skeleton
    """

    def __init__(self, options: Optional[RenderOptions] = None,
                 model_color=MODEL_COLOR_BGR, subject_color=SUBJECT_COLOR_BGR):
        self.options = options or RenderOptions()
        self.model_color = model_color
        self.subject_color = subject_color

    def render(self, frame: np.ndarray, t: float, model=None, subject=None,
               masks=None, mode=RenderMode.OVERLAY, impact_frame: Optional[int] = None,
               show_isolation: bool = False, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Draw one tick.

        Args:
            frame: Video frame (BGR) at the play head, native resolution
            t: Play-head time in seconds
            model: Model SkeletonSequence on the canonical index domain
            subject: Subject SkeletonSequence on the canonical index domain
            masks: IsolationMasks of the displayed video (list or index dict)
            mode: RenderMode or 'overlay' / 'split'
            impact_frame: Canonical index that gets the impact marker
            show_isolation: Dim pixels outside the mask when one exists
            out: Optional surface to draw into (same shape as frame)

        Returns:
            The drawn surface
        """
        mode = RenderMode(mode)
        index = canonical_index(t, self.options.canonical_fps)

        if out is None:
            out = np.empty_like(frame)
        elif out.shape != frame.shape:
            raise ValueError(f"Surface shape {out.shape} does not match frame {frame.shape}")

        model_frame = model.frame_at(index) if model is not None else None
        subject_frame = subject.frame_at(index) if subject is not None else None

        mask = None
        if show_isolation and masks:
            lookup = masks if isinstance(masks, dict) else masks_by_index(masks)
            mask = lookup.get(index)

        if mode is RenderMode.OVERLAY:
            out[:] = frame
            if mask is not None:
                self._safely(self._dim_outside, out, mask)
            for skeleton, color in ((model_frame, self.model_color),
                                    (subject_frame, self.subject_color)):
                if skeleton is not None:
                    self._draw_skeleton(out, skeleton, color, 1.0, (0, 0))
        else:
            self._render_split(out, frame, model_frame, subject_frame, mask)

        if impact_frame is not None and index == impact_frame:
            self._safely(self._draw_impact_marker, out)
        return out

    # ============================================
    # LAYOUTS
    # ============================================

    def _render_split(self, out, frame, model_frame, subject_frame, mask):
        h, w = frame.shape[:2]
        half_w = w // 2
        scale = half_w / w
        scaled_h = max(1, int(round(h * scale)))
        y_off = (h - scaled_h) // 2

        out[:] = 0
        small = cv2.resize(frame, (half_w, scaled_h), interpolation=cv2.INTER_AREA)

        halves = [(0, model_frame, self.model_color, 'MODEL'),
                  (w - half_w, subject_frame, self.subject_color, 'PLAYER')]
        for x_off, skeleton, color, label in halves:
            region = out[y_off:y_off + scaled_h, x_off:x_off + half_w]
            region[:] = small
            if mask is not None:
                self._safely(self._dim_outside, region, mask)
            if skeleton is not None:
                self._draw_skeleton(out, skeleton, color, scale, (x_off, y_off))
            self._safely(self._draw_label, out, label, (x_off + 10, y_off + 10))

        self._safely(cv2.line, out, (half_w, 0), (half_w, h - 1), DIVIDER_COLOR_BGR, 2)

    # ============================================
    # DRAW ELEMENTS
    # ============================================

    def _safely(self, draw, *args):
        try:
            draw(*args)
        except Exception as e:
            logger.debug("Skipped draw element %s: %s", getattr(draw, '__name__', draw), e)

    def _draw_skeleton(self, canvas, skeleton, color, scale: float, offset: Tuple[int, int]):
        threshold = self.options.visibility_threshold
        points: Dict[int, Tuple[int, int]] = {}
        for idx in SKELETON_JOINTS:
            kp = skeleton.keypoints[idx]
            if not kp.is_visible(threshold):
                continue
            try:
                points[idx] = (int(round(kp.x * scale + offset[0])),
                               int(round(kp.y * scale + offset[1])))
            except (ValueError, OverflowError):
                continue

        for start, end in SKELETON_EDGES:
            if start in points and end in points:
                self._safely(cv2.line, canvas, points[start], points[end], color,
                             self.options.line_thickness, cv2.LINE_AA)

        for idx, point in points.items():
            self._safely(cv2.circle, canvas, point, self.options.joint_radius, color,
                         -1, cv2.LINE_AA)
            self._safely(cv2.circle, canvas, point, self.options.joint_radius,
                         LABEL_TEXT_BGR, 1, cv2.LINE_AA)

    def _dim_outside(self, region, mask: IsolationMask):
        h, w = region.shape[:2]
        coverage = cv2.resize(mask.as_array(), (w, h), interpolation=cv2.INTER_NEAREST)
        outside = coverage < 128
        region[outside] = (region[outside] * self.options.background_dim).astype(region.dtype)

    def _draw_label(self, canvas, text, origin):
        font, font_scale, thickness = cv2.FONT_HERSHEY_SIMPLEX, 0.7, 2
        (text_w, text_h), baseline = cv2.getTextSize(text, font, font_scale, thickness)
        x, y = origin
        cv2.rectangle(canvas, (x, y), (x + text_w + 12, y + text_h + baseline + 10),
                      LABEL_BACKING_BGR, -1)
        cv2.putText(canvas, text, (x + 6, y + text_h + 5), font, font_scale,
                    LABEL_TEXT_BGR, thickness, cv2.LINE_AA)

    def _draw_impact_marker(self, canvas):
        h, w = canvas.shape[:2]
        inset = self.options.impact_inset
        corners = [(inset, inset), (w - inset, inset), (w - inset, h - inset), (inset, h - inset)]
        for start, end in zip(corners, corners[1:] + corners[:1]):
            _dashed_line(canvas, start, end, IMPACT_COLOR_BGR, 3)
        cv2.putText(canvas, 'IMPACT', (inset + 12, inset + 36), cv2.FONT_HERSHEY_SIMPLEX,
                    1.0, IMPACT_COLOR_BGR, 2, cv2.LINE_AA)


def _dashed_line(canvas, start, end, color, thickness, dash=10, gap=5):
    start = np.asarray(start, dtype=float)
    end = np.asarray(end, dtype=float)
    length = float(np.linalg.norm(end - start))
    if length == 0:
        return
    direction = (end - start) / length
    pos = 0.0
    while pos < length:
        a = start + direction * pos
        b = start + direction * min(pos + dash, length)
        cv2.line(canvas, (int(a[0]), int(a[1])), (int(b[0]), int(b[1])), color, thickness)
        pos += dash + gap


def render_frame(frame, t, model=None, subject=None, masks=None, mode=RenderMode.OVERLAY,
                 impact_frame=None, show_isolation=False,
                 options: Optional[RenderOptions] = None) -> np.ndarray:
    """One-shot render with default colours."""
    return SkeletonRenderer(options).render(frame, t, model, subject, masks, mode,
                                            impact_frame, show_isolation)
