"""
Keypoint Detector Adapter
=========================
MediaPipe PoseLandmarker behind a small acquire -> use -> release interface.

The landmarker runs in VIDEO mode and tracks across calls, so one detector
instance serves exactly one extraction run and must see strictly
increasing timestamps. Callers own the lifecycle:

    with PoseDetector() as detector:
        result = SwingAnalyzer(detector).extract(video)
"""

import os
import logging
from abc import ABC, abstractmethod
from typing import Optional, Tuple

import cv2
import numpy as np

from .. import config
from .sequence import Keypoint, keypoints_from_rows

logger = logging.getLogger(__name__)


class KeypointDetector(ABC):
    """One-pose-per-frame keypoint detector."""

    def open(self) -> 'KeypointDetector':
        return self

    def close(self):
        pass

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    @abstractmethod
    def detect(self, frame: np.ndarray, timestamp_ms: int) -> Optional[Tuple[Keypoint, ...]]:
        """
        Detect one pose.

        Args:
            frame: BGR image
            timestamp_ms: Position of the frame in the video

        Returns:
            The 33 keypoints in vocabulary order, in frame pixels, or None
            when no person is found
        """
        raise NotImplementedError


class PoseDetector(KeypointDetector):
    def __init__(self, model_path=None,
                 num_poses=config.MEDIAPIPE_CONFIG['num_poses'],
                 min_detection_confidence=config.MEDIAPIPE_CONFIG['min_detection_confidence'],
                 min_presence_confidence=config.MEDIAPIPE_CONFIG['min_presence_confidence'],
                 min_tracking_confidence=config.MEDIAPIPE_CONFIG['min_tracking_confidence']):
        self.model_path = model_path or config.POSE_MODEL_PATH
        self.num_poses = num_poses
        self.min_detection_confidence = min_detection_confidence
        self.min_presence_confidence = min_presence_confidence
        self.min_tracking_confidence = min_tracking_confidence

        self._mp = None
        self._landmarker = None
        self._last_timestamp_ms = -1

    def open(self) -> 'PoseDetector':
        if self._landmarker is not None:
            return self
        if not os.path.exists(self.model_path):
            raise FileNotFoundError(
                f"Pose landmarker model not found: {self.model_path} "
                f"(set SWINGSYNC_POSE_MODEL to a .task file)")

        # Loaded here so the rest of the package imports without the model runtime
        import mediapipe as mp
        from mediapipe.tasks import python
        from mediapipe.tasks.python import vision

        options = vision.PoseLandmarkerOptions(
            base_options=python.BaseOptions(model_asset_path=self.model_path),
            running_mode=vision.RunningMode.VIDEO,
            num_poses=self.num_poses,
            min_pose_detection_confidence=self.min_detection_confidence,
            min_pose_presence_confidence=self.min_presence_confidence,
            min_tracking_confidence=self.min_tracking_confidence
        )
        self._mp = mp
        self._landmarker = vision.PoseLandmarker.create_from_options(options)
        self._last_timestamp_ms = -1
        logger.info("Loaded pose landmarker %s", self.model_path)
        return self

    def close(self):
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
            logger.debug("Released pose landmarker")

    def detect(self, frame, timestamp_ms):
        if self._landmarker is None:
            raise RuntimeError("PoseDetector is not open")

        # VIDEO mode rejects non-increasing timestamps
        timestamp_ms = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = timestamp_ms

        rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        mp_image = self._mp.Image(image_format=self._mp.ImageFormat.SRGB, data=rgb)
        results = self._landmarker.detect_for_video(mp_image, timestamp_ms)

        if not results.pose_landmarks:
            return None

        h, w = frame.shape[:2]
        rows = []
        for lm in results.pose_landmarks[0]:
            visibility = lm.visibility if lm.visibility is not None else 1.0
            rows.append((lm.x * w, lm.y * h, lm.z, visibility))
        return keypoints_from_rows(rows)
