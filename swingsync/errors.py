"""
Error taxonomy
==============

Only InputRejectedError, NoPersonDetectedError and ExtractionCancelledError
ever leave an extraction run. FrameSkippedError is raised by per-frame steps
and absorbed by the pipeline as a gap in the sequence.
"""


class SwingSyncError(RuntimeError):
    """Base class for every error raised by swingsync."""

    guidance = ''

    def __init__(self, message, guidance=None):
        super().__init__(message)
        if guidance is not None:
            self.guidance = guidance


class InputRejectedError(SwingSyncError):
    """Video is too long, or cannot be opened or seeked at all."""

    guidance = 'Trim the clip to the swing itself and make sure the file plays.'


class NoPersonDetectedError(SwingSyncError):
    """No sampled frame produced a pose."""

    guidance = ('Film with the whole body in frame, in good light, '
                'against an uncluttered background.')


class ExtractionCancelledError(SwingSyncError):
    """The caller cancelled the run. Runs are not resumable."""


class FrameSkippedError(SwingSyncError):
    """A single frame's seek, decode or detect step failed."""

    def __init__(self, message, frame_index=None):
        super().__init__(message)
        self.frame_index = frame_index


class FrameTimeoutError(FrameSkippedError):
    """A single frame's seek, decode and detect job ran past its timeout."""
