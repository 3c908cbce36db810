"""
Render Module
=============
Synchronized overlay / split rendering of two skeleton sequences.
"""

from .overlay import (RenderMode, SkeletonRenderer, canonical_index,
                      align_to_canonical, render_frame)
from .player import PlaybackController, render_to_file, run_preview

__all__ = ['RenderMode', 'SkeletonRenderer', 'canonical_index', 'align_to_canonical',
           'render_frame', 'PlaybackController', 'render_to_file', 'run_preview']
