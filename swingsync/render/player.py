"""
Synchronized Playback
=====================
Transport controls on a video play head, plus two drivers that feed the
renderer: an interactive OpenCV preview window and an offline export to
a video file.
"""

import logging
from typing import Optional

import cv2
from tqdm import tqdm

from ..config import RenderOptions
from ..video.isolation import masks_by_index
from ..video.source import VideoSource
from .overlay import RenderMode, SkeletonRenderer, canonical_index

logger = logging.getLogger(__name__)


class PlaybackController:
    """
    Play head state: play/pause, seek, step by canonical frames.

    Args:
        duration: Video length in seconds
        canonical_fps: Declared rendering rate
        step_frames: Default step size in canonical frames
    """

    def __init__(self, duration: float, canonical_fps: float = 120.0, step_frames: int = 5):
        if duration < 0:
            raise ValueError(f"duration must be >= 0, got {duration}")
        self.duration = float(duration)
        self.canonical_fps = canonical_fps
        self.step_frames = step_frames
        self.current_time = 0.0
        self.playing = False

    def play(self):
        if self.current_time >= self.duration:
            self.current_time = 0.0
        self.playing = True

    def pause(self):
        self.playing = False

    def toggle(self):
        if self.playing:
            self.pause()
        else:
            self.play()

    def seek(self, t: float) -> float:
        self.current_time = min(self.duration, max(0.0, float(t)))
        return self.current_time

    def step(self, frames: Optional[int] = None) -> float:
        """Pause and move the play head by +/- frames canonical frames."""
        frames = self.step_frames if frames is None else frames
        self.pause()
        return self.seek(self.current_time + frames / self.canonical_fps)

    def advance(self, dt: float) -> float:
        """Move forward by wall-clock dt while playing; stops at the end."""
        if self.playing:
            self.seek(self.current_time + dt)
            if self.current_time >= self.duration:
                self.playing = False
        return self.current_time

    @property
    def canonical_frame(self) -> int:
        return canonical_index(self.current_time, self.canonical_fps)


def render_to_file(video_path, output_path, model=None, subject=None, masks=None,
                   mode=RenderMode.OVERLAY, impact_frame=None, show_isolation=False,
                   options: Optional[RenderOptions] = None, show_progress=True) -> int:
    """
    Render every source frame with synchronized skeletons into a new video.

    Args:
        video_path: Source video shown under the skeletons
        output_path: Destination .mp4
        model, subject: SkeletonSequences on the canonical index domain
        masks: IsolationMasks of the source video on the canonical domain
        mode: RenderMode or 'overlay' / 'split'
        impact_frame: Canonical index to mark
        show_isolation: Dim the background where masks exist
        options: RenderOptions
        show_progress: Show a tqdm bar

    Returns:
        Number of frames written
    """
    renderer = SkeletonRenderer(options)
    mask_lookup = masks_by_index(masks)
    written = 0
    with VideoSource(video_path) as video:
        meta = video.metadata
        fourcc = cv2.VideoWriter_fourcc(*'mp4v')
        out = cv2.VideoWriter(str(output_path), fourcc, meta.fps, (meta.width, meta.height))
        if not out.isOpened():
            raise IOError(f"Cannot open video writer for {output_path}")
        try:
            frames = video.frames()
            if show_progress:
                frames = tqdm(frames, total=meta.frame_count, desc='Rendering', unit='frame')
            surface = None
            for _, t, frame in frames:
                surface = renderer.render(frame, t, model, subject, mask_lookup, mode,
                                          impact_frame, show_isolation, out=surface)
                out.write(surface)
                written += 1
        finally:
            out.release()
    logger.info("Wrote %d frames to %s", written, output_path)
    return written


def run_preview(video_path, model=None, subject=None, masks=None, mode=RenderMode.OVERLAY,
                impact_frame=None, show_isolation=False,
                options: Optional[RenderOptions] = None,
                window_name='SwingSync'):
    """
    Interactive preview window.

    Keys: space play/pause, a/d step back/forward, s toggle split,
    i toggle isolation, q quit.
    """
    options = options or RenderOptions()
    renderer = SkeletonRenderer(options)
    mask_lookup = masks_by_index(masks)
    mode = RenderMode(mode)

    with VideoSource(video_path) as video:
        meta = video.metadata
        controller = PlaybackController(meta.duration, options.canonical_fps,
                                        options.step_frames)
        delay_ms = max(1, int(1000 / meta.fps))
        surface = None
        try:
            while True:
                t = controller.current_time
                frame = video.read_at(min(t, max(0.0, meta.duration - 1.0 / meta.fps)))
                surface = renderer.render(frame, t, model, subject, mask_lookup, mode,
                                          impact_frame, show_isolation, out=surface)
                cv2.imshow(window_name, surface)

                key = cv2.waitKey(delay_ms) & 0xFF
                if key == ord('q'):
                    break
                elif key == ord(' '):
                    controller.toggle()
                elif key == ord('a'):
                    controller.step(-options.step_frames)
                elif key == ord('d'):
                    controller.step(options.step_frames)
                elif key == ord('s'):
                    mode = RenderMode.SPLIT if mode is RenderMode.OVERLAY else RenderMode.OVERLAY
                    surface = None
                elif key == ord('i'):
                    show_isolation = not show_isolation
                controller.advance(delay_ms / 1000.0)
        finally:
            cv2.destroyAllWindows()
