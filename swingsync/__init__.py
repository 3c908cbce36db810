"""
SwingSync - Synchronized Swing Capture and Comparison
=====================================================

Modules:
    pose: Keypoint detection, skeleton sequences and the extraction pipeline
    video: Video access, adaptive frame sampling and foreground isolation
    render: Synchronized dual-skeleton rendering and playback
    biomechanics: Reference-frame metrics, comparison and kinematic sequence
"""

import logging

from . import pose
from . import video
from . import render
from . import biomechanics

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = '0.1.0'
