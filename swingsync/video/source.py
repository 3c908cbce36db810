"""
Video Source
============
Seekable OpenCV reader with the metadata the extraction pipeline needs.
"""

import os
import logging
from dataclasses import dataclass

import cv2
import numpy as np

from ..errors import InputRejectedError, FrameSkippedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VideoMetadata:
    path: str
    width: int
    height: int
    fps: float
    frame_count: int

    @property
    def duration(self) -> float:
        return self.frame_count / self.fps if self.fps > 0 else 0.0

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"


def inspect_video(video_path) -> VideoMetadata:
    """Read fps, resolution and frame count without decoding frames."""
    cap = cv2.VideoCapture(str(video_path))
    try:
        if not cap.isOpened():
            raise InputRejectedError(f"Cannot open video: {video_path}")
        return VideoMetadata(
            path=str(video_path),
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            fps=float(cap.get(cv2.CAP_PROP_FPS)),
            frame_count=int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
        )
    finally:
        cap.release()


class VideoSource:
    """
    Random-access frame reader over one video file.

    Use as a context manager so the capture handle is released on every
    exit path:

        with VideoSource('swing.mp4') as video:
            frame = video.read_at(1.25)
    """

    def __init__(self, video_path):
        self.video_path = str(video_path)
        self._cap = None
        self._metadata = None

    def open(self) -> 'VideoSource':
        if not os.path.exists(self.video_path):
            raise InputRejectedError(f"Video not found: {self.video_path}",
                                     guidance='Check the video path and try again.')
        cap = cv2.VideoCapture(self.video_path)
        if not cap.isOpened():
            cap.release()
            raise InputRejectedError(f"Cannot open video: {self.video_path}")

        metadata = VideoMetadata(
            path=self.video_path,
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            fps=float(cap.get(cv2.CAP_PROP_FPS)),
            frame_count=int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
        )
        if metadata.fps <= 0 or metadata.frame_count <= 0 or metadata.width <= 0:
            cap.release()
            raise InputRejectedError(
                f"Cannot read duration or dimensions of {self.video_path}",
                guidance='Re-export the clip as a standard MP4 (H.264) file.')

        self._cap = cap
        self._metadata = metadata
        logger.info("Opened %s: %s @ %.2f fps, %d frames (%.2fs)",
                    self.video_path, metadata.resolution, metadata.fps,
                    metadata.frame_count, metadata.duration)
        return self

    def close(self):
        if self._cap is not None:
            self._cap.release()
            self._cap = None

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    @property
    def metadata(self) -> VideoMetadata:
        if self._metadata is None:
            raise RuntimeError("VideoSource is not open")
        return self._metadata

    def frame_number_at(self, timestamp: float) -> int:
        last = self._metadata.frame_count - 1
        return min(last, max(0, int(round(timestamp * self._metadata.fps))))

    def read_at(self, timestamp: float) -> np.ndarray:
        """
        Seek to the frame nearest `timestamp` (seconds) and decode it.

        Raises:
            FrameSkippedError: if the seek or decode fails
        """
        if self._cap is None:
            raise RuntimeError("VideoSource is not open")

        frame_number = self.frame_number_at(timestamp)
        if not self._cap.set(cv2.CAP_PROP_POS_FRAMES, frame_number):
            raise FrameSkippedError(f"Seek to frame {frame_number} failed")
        success, frame = self._cap.read()
        if not success or frame is None:
            raise FrameSkippedError(f"Decode of frame {frame_number} failed")
        return frame

    def frames(self):
        """Sequential (frame_number, timestamp, frame) iterator from the start."""
        if self._cap is None:
            raise RuntimeError("VideoSource is not open")
        self._cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
        frame_number = 0
        while True:
            success, frame = self._cap.read()
            if not success:
                break
            yield frame_number, frame_number / self._metadata.fps, frame
            frame_number += 1
