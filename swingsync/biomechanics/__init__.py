"""
Biomechanics Module - Swing metrics, comparison and kinematic sequence
"""

from .angles import (Handedness, Metric, MetricCategory, MetricSet,
                     SwingBiomechanics, analyze)
from .comparator import DiffSet, SwingComparator, compare
from .kinematics import KinematicSequence, kinematic_sequence

__all__ = ['Handedness', 'Metric', 'MetricCategory', 'MetricSet', 'SwingBiomechanics',
           'analyze', 'DiffSet', 'SwingComparator', 'compare',
           'KinematicSequence', 'kinematic_sequence']
