"""
Pose Module
===========
MediaPipe keypoint detection, skeleton data model and extraction pipeline.
"""

from .sequence import Keypoint, SkeletonFrame, SkeletonSequence
from .detector import KeypointDetector, PoseDetector
from .analyzer import SwingAnalyzer, ExtractionProgress, ExtractionResult, extract_from_file

__all__ = ['Keypoint', 'SkeletonFrame', 'SkeletonSequence',
           'KeypointDetector', 'PoseDetector',
           'SwingAnalyzer', 'ExtractionProgress', 'ExtractionResult', 'extract_from_file']
