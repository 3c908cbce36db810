import math
import unittest

import numpy as np

from swingsync.biomechanics.angles import Handedness
from swingsync.biomechanics.kinematics import (SEGMENTS, angular_velocity,
                                               kinematic_sequence, segment_angle_series)

from tests.fakes import make_sequence

FPS = 60.0
# Seconds at which each segment turns fastest
PEAK_TIMES = {'pelvis': 0.3, 'torso': 0.4, 'lead_arm': 0.5, 'hands': 0.6}


def turn(segment, t, amplitude=40.0, width=0.05):
    return amplitude * math.tanh((t - PEAK_TIMES[segment]) / width)


def polar(center, degrees, radius):
    rad = math.radians(degrees)
    return (center[0] + radius * math.cos(rad), center[1] + radius * math.sin(rad))


def swing_pose(index):
    t = index / FPS
    hips_center, shoulders_center = (320.0, 300.0), (320.0, 160.0)
    left_hip = polar(hips_center, turn('pelvis', t), 25.0)
    left_shoulder = polar(shoulders_center, turn('torso', t), 40.0)
    wrist = polar(hips_center, turn('hands', t), 100.0)
    elbow = polar(wrist, turn('lead_arm', t) + 180.0, 60.0)
    return {'positions': {
        'left_hip': left_hip,
        'right_hip': (2 * hips_center[0] - left_hip[0], 2 * hips_center[1] - left_hip[1]),
        'left_shoulder': left_shoulder,
        'right_shoulder': (2 * shoulders_center[0] - left_shoulder[0],
                           2 * shoulders_center[1] - left_shoulder[1]),
        'left_wrist': wrist,
        'left_elbow': elbow,
    }}


class AngularVelocityTests(unittest.TestCase):
    def test_constant_rate(self) -> None:
        t = np.arange(0, 1.01, 0.1)
        velocity = angular_velocity(t, 90.0 * t, smoothing=1)
        np.testing.assert_allclose(velocity, 90.0)

    def test_unwraps_across_the_seam(self) -> None:
        velocity = angular_velocity(np.array([0.0, 1.0, 2.0]),
                                    np.array([170.0, -170.0, -150.0]), smoothing=1)
        np.testing.assert_allclose(velocity, 20.0)


class KinematicSequenceTests(unittest.TestCase):
    def test_proximal_to_distal_peaks(self) -> None:
        seq = make_sequence(range(60), fps=FPS, pose_for=swing_pose)
        result = kinematic_sequence(seq, 40, Handedness.RIGHT)

        self.assertEqual(result.order, tuple(SEGMENTS))
        self.assertTrue(result.is_proximal_to_distal)
        self.assertEqual(result.peaks['pelvis'].peak_frame, 18)
        self.assertEqual(result.peaks['hands'].peak_frame, 36)
        self.assertAlmostEqual(result.peaks['pelvis'].ms_before_reference,
                               (40 - 18) / FPS * 1000.0, places=6)

        record = result.to_record()
        self.assertEqual(record['order'], SEGMENTS)
        self.assertGreater(record['torso_peak_velocity'], 0.0)

    def test_segments_without_visible_keypoints_are_omitted(self) -> None:
        def pose(index):
            kwargs = swing_pose(index)
            kwargs['hidden'] = ('left_wrist',)
            return kwargs

        seq = make_sequence(range(60), fps=FPS, pose_for=pose)
        result = kinematic_sequence(seq, 40)
        self.assertEqual(set(result.peaks), {'pelvis', 'torso'})
        self.assertIsNone(result.to_record()['hands_peak_velocity'])

        angles = segment_angle_series(seq)
        self.assertTrue(angles['hands'].isna().all())
        self.assertFalse(angles['pelvis'].isna().any())


if __name__ == "__main__":
    unittest.main()
