"""
SwingSync - Extraction Pipeline
===============================
Turns a swing video into a SkeletonSequence.

Steps:
1. Gate the clip on duration (hard reject, soft warning)
2. Plan adaptive sample timestamps (FrameSampler)
3. Per sample: seek + decode + detect as one job under a timeout
4. Optionally isolate the athlete on every Nth successful sample
5. Validate the run (no person / degraded quality)

Detection is strictly sequential: the detector tracks state across calls,
so jobs run on a single worker thread. A job that misses its timeout is
abandoned; whatever it eventually returns is logged and dropped, never
attributed to a later frame.
"""

import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError, wait
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..config import ExtractionOptions
from ..errors import (InputRejectedError, NoPersonDetectedError,
                      ExtractionCancelledError, FrameSkippedError, FrameTimeoutError)
from ..video.sampler import FrameSampler, SamplePlan
from ..video.isolation import KeypointIsolator
from ..video.source import VideoSource
from .detector import PoseDetector
from .sequence import SkeletonFrame, SkeletonSequence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionProgress:
    frames_processed: int
    frames_total: int
    estimated_seconds_remaining: float

    def to_record(self):
        return {
            'framesProcessed': self.frames_processed,
            'framesTotal': self.frames_total,
            'estimatedSecondsRemaining': self.estimated_seconds_remaining
        }


@dataclass
class ExtractionResult:
    sequence: SkeletonSequence
    plan: SamplePlan
    masks: list = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    degraded: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def frames_targeted(self) -> int:
        return self.plan.count

    @property
    def success_ratio(self) -> float:
        return len(self.sequence) / self.plan.count if self.plan.count else 0.0

    @property
    def quality_score(self) -> float:
        """Mean keypoint visibility over the extracted frames."""
        return self.sequence.average_visibility()

    def summary(self):
        return {
            'frames_targeted': self.frames_targeted,
            'frames_extracted': len(self.sequence),
            'frames_skipped': len(self.skipped),
            'masks': len(self.masks),
            'sampling_rate': self.plan.rate,
            'success_ratio': round(self.success_ratio, 4),
            'quality_score': round(self.quality_score, 4),
            'degraded': self.degraded
        }


class SwingAnalyzer:
    """
    Extraction pipeline over one caller-owned detector.

    Args:
        detector: An open KeypointDetector, used for one run
        isolator: Optional ForegroundIsolator
        options: ExtractionOptions (defaults if None)
        clock: Monotonic time source, used for ETA
    """

    def __init__(self, detector, isolator=None, options: Optional[ExtractionOptions] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.detector = detector
        self.isolator = isolator
        self.options = options or ExtractionOptions()
        self.sampler = FrameSampler.from_options(self.options)
        self.clock = clock
        self._abandoned = None

    def extract(self, video, progress: Optional[Callable[[ExtractionProgress], None]] = None,
                cancel_event: Optional[threading.Event] = None) -> ExtractionResult:
        """
        Extract the skeleton sequence of one video.

        Args:
            video: Open video source exposing `metadata.duration` and `read_at(seconds)`
            progress: Called after every sample with an ExtractionProgress
            cancel_event: Checked between frames; when set the run is abandoned

        Returns:
            ExtractionResult (possibly flagged degraded)

        Raises:
            InputRejectedError: clip too long or without a readable duration
            NoPersonDetectedError: no sample produced a pose
            ExtractionCancelledError: cancel_event was set
        """
        options = self.options
        duration = video.metadata.duration
        self._check_duration(duration)

        isolate = self.isolator is not None and options.isolation_enabled
        if isolate and duration > options.isolation_max_duration:
            logger.info("Isolation disabled: %.1fs clip exceeds %.1fs",
                        duration, options.isolation_max_duration)
            isolate = False

        plan = self.sampler.plan(duration)
        logger.info("Sampling %d frames at %.2f fps from %.2fs clip",
                    plan.count, plan.rate, duration)

        frames = []
        masks = []
        skipped = []
        started = self.clock()
        self._abandoned = None

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='swingsync-detect')
        try:
            for index, timestamp in enumerate(plan.timestamps):
                if cancel_event is not None and cancel_event.is_set():
                    raise ExtractionCancelledError(
                        f"Extraction cancelled after {index}/{plan.count} frames")

                try:
                    image, keypoints = self._run_job(executor, video, index, timestamp)
                except FrameSkippedError as e:
                    logger.debug("Frame %d skipped: %s", index, e)
                    skipped.append(index)
                else:
                    if keypoints is None:
                        logger.debug("Frame %d: no pose", index)
                        skipped.append(index)
                    else:
                        skeleton = SkeletonFrame(index, timestamp, keypoints)
                        frames.append(skeleton)
                        if isolate and index % options.isolation_stride == 0:
                            mask = self._isolate(image, skeleton)
                            if mask is not None:
                                masks.append(mask)

                if progress is not None:
                    progress(self._progress(index + 1, plan.count, started))
        finally:
            self._drain_abandoned()
            executor.shutdown(wait=True, cancel_futures=True)

        return self._validate(frames, masks, skipped, plan)

    # ============================================
    # PIPELINE STEPS
    # ============================================

    def _check_duration(self, duration):
        options = self.options
        if duration <= 0:
            raise InputRejectedError("Video has no readable duration")
        if duration > options.hard_duration_limit:
            raise InputRejectedError(
                f"Video is {duration:.1f}s long; the limit is {options.hard_duration_limit:.0f}s",
                guidance=f"Trim the clip to under {options.hard_duration_limit:.0f} seconds, "
                         f"ideally just the swing.")
        if duration > options.soft_duration_limit:
            logger.warning("Video is %.1fs long; clips under %.0fs extract faster and cleaner",
                           duration, options.soft_duration_limit)

    def _capture(self, video, index, timestamp, abandoned):
        image = video.read_at(timestamp)
        # A seek that lands after its timeout never reaches the tracker
        if abandoned.is_set():
            raise FrameTimeoutError("Seek finished after its timeout", frame_index=index)
        keypoints = self.detector.detect(image, int(round(timestamp * 1000)))
        return image, keypoints

    def _run_job(self, executor, video, index, timestamp):
        """
        Seek + decode + detect for one sample, bounded by the frame timeout.

        A job abandoned on timeout keeps the single worker busy until it
        returns. The next job starts only once it has drained, so every
        job gets its full budget and the detector never runs concurrently.
        """
        timeout = self.options.frame_timeout
        if self._abandoned is not None:
            done, _ = wait([self._abandoned], timeout=timeout)
            if not done:
                raise FrameTimeoutError(
                    "Detector still busy with an abandoned frame", frame_index=index)
            self._abandoned = None

        abandoned = threading.Event()
        future = executor.submit(self._capture, video, index, timestamp, abandoned)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError:
            abandoned.set()
            self._abandoned = future
            future.add_done_callback(
                lambda f, index=index: _discard_late_result(f, index))
            raise FrameTimeoutError(f"No result within {timeout:.1f}s", frame_index=index)
        except FrameSkippedError:
            raise
        except Exception as e:
            logger.warning("Frame %d: detection failed: %s", index, e)
            raise FrameSkippedError(str(e), frame_index=index) from e

    def _drain_abandoned(self):
        """Block until an abandoned job has returned, so the caller may release
        the video and the detector."""
        if self._abandoned is not None:
            logger.debug("Waiting for an abandoned frame job to finish")
            wait([self._abandoned])
            self._abandoned = None

    def _isolate(self, image, skeleton):
        try:
            return self.isolator.isolate(image, skeleton)
        except Exception as e:
            logger.debug("Frame %d: no isolation mask (%s)", skeleton.frame_index, e)
            return None

    def _progress(self, processed, total, started):
        elapsed = self.clock() - started
        remaining = (elapsed / processed) * (total - processed) if processed else 0.0
        return ExtractionProgress(processed, total, max(0.0, remaining))

    def _validate(self, frames, masks, skipped, plan):
        options = self.options
        if not frames:
            raise NoPersonDetectedError(
                f"No person detected in any of {plan.count} sampled frames")

        sequence = SkeletonSequence(frames, plan.rate)
        result = ExtractionResult(sequence=sequence, plan=plan, masks=masks, skipped=skipped)

        if len(frames) < options.min_success_ratio * plan.count:
            result.degraded = True
            message = (f"Pose found in only {len(frames)} of {plan.count} sampled frames; "
                       f"results may be unreliable. Improve lighting and keep the whole "
                       f"body in frame.")
            result.warnings.append(message)
            logger.warning(message)

        logger.info("Extracted %d/%d frames (%d skipped, %d masks)",
                    len(frames), plan.count, len(skipped), len(masks))
        return result


def _discard_late_result(future, index):
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.debug("Late job for frame %d failed after its timeout: %s", index, error)
    else:
        logger.debug("Discarding result for frame %d that arrived after its timeout", index)


def extract_from_file(video_path, options: Optional[ExtractionOptions] = None,
                      progress=None, cancel_event=None, model_path=None) -> ExtractionResult:
    """
    Open the video and a fresh detector, run one extraction, release both.

    Args:
        video_path: Path to the swing video
        options: ExtractionOptions (defaults if None)
        progress: Optional ExtractionProgress callback
        cancel_event: Optional threading.Event checked between frames
        model_path: PoseLandmarker .task file (config.POSE_MODEL_PATH if None)

    Returns:
        ExtractionResult
    """
    options = options or ExtractionOptions()
    isolator = KeypointIsolator() if options.isolation_enabled else None

    with VideoSource(video_path) as video, PoseDetector(model_path=model_path) as detector:
        analyzer = SwingAnalyzer(detector, isolator=isolator, options=options)
        return analyzer.extract(video, progress=progress, cancel_event=cancel_event)
