"""
Video Processing Module
=======================
Seekable video access, adaptive frame sampling and foreground isolation.
"""

from .source import VideoSource, VideoMetadata, inspect_video
from .sampler import FrameSampler, SamplePlan, sampling_rate
from .isolation import BoundingBox, IsolationMask, ForegroundIsolator, KeypointIsolator

__all__ = ['VideoSource', 'VideoMetadata', 'inspect_video',
           'FrameSampler', 'SamplePlan', 'sampling_rate',
           'BoundingBox', 'IsolationMask', 'ForegroundIsolator', 'KeypointIsolator']
