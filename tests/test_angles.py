import math
import unittest

from swingsync.biomechanics.angles import (Handedness, Metric, MetricCategory, MetricSet,
                                           SwingBiomechanics, resolve_side, wrap_degrees)

from tests.fakes import make_frame, make_sequence

HIP_CENTER = (320.0, 300.0)


def rotated_hips(degrees, radius=25.0):
    rad = math.radians(degrees)
    dx, dy = radius * math.cos(rad), radius * math.sin(rad)
    cx, cy = HIP_CENTER
    return {'left_hip': (cx + dx, cy + dy), 'right_hip': (cx - dx, cy - dy)}


def wrist_on_circle(degrees, radius=100.0):
    rad = math.radians(degrees)
    return (HIP_CENTER[0] + radius * math.cos(rad), HIP_CENTER[1] + radius * math.sin(rad))


class HelperTests(unittest.TestCase):
    def test_side_neutral_names_follow_handedness(self) -> None:
        self.assertEqual(resolve_side('lead_wrist', Handedness.RIGHT), 'left_wrist')
        self.assertEqual(resolve_side('lead_wrist', Handedness.LEFT), 'right_wrist')
        self.assertEqual(resolve_side('trail_elbow', Handedness.RIGHT), 'right_elbow')
        self.assertEqual(resolve_side('nose', Handedness.LEFT), 'nose')
        self.assertIs(Handedness.parse(' Left '), Handedness.LEFT)

    def test_wrap_degrees(self) -> None:
        self.assertEqual(wrap_degrees(-330.0), 30.0)
        self.assertEqual(wrap_degrees(190.0), -170.0)
        self.assertEqual(wrap_degrees(-180.0), 180.0)

    def test_every_metric_has_a_fixed_category(self) -> None:
        self.assertEqual(Metric.BAT_SPEED.category, MetricCategory.SEQUENCING)
        self.assertEqual(Metric.FRONT_KNEE_ANGLE.category, MetricCategory.STABILITY)
        self.assertEqual(Metric.HIP_ROTATION.category, MetricCategory.MOTION)
        self.assertIs(Metric.from_key('hip_rotation'), Metric.HIP_ROTATION)
        with self.assertRaises(KeyError):
            Metric.from_key('swing_grade')


class ReferenceFrameMetricTests(unittest.TestCase):
    def setUp(self) -> None:
        self.bio = SwingBiomechanics(Handedness.RIGHT)

    def test_hip_rotation_relative_to_setup(self) -> None:
        seq = make_sequence([0, 1, 2], pose_for=lambda i: {
            'positions': rotated_hips(15.0 * i)})
        metrics = self.bio.analyze(seq, 2)
        self.assertAlmostEqual(metrics[Metric.HIP_ROTATION], 30.0, places=6)
        self.assertAlmostEqual(metrics['peak_hip_rotation'], 30.0, places=6)
        self.assertAlmostEqual(metrics[Metric.SHOULDER_ROTATION], 0.0, places=6)
        self.assertAlmostEqual(metrics[Metric.HIP_SHOULDER_SEPARATION], 30.0, places=6)

    def test_peak_rotation_covers_the_whole_swing(self) -> None:
        angles = {0: 0.0, 1: 45.0, 2: 20.0}
        seq = make_sequence([0, 1, 2], pose_for=lambda i: {
            'positions': rotated_hips(angles[i])})
        metrics = self.bio.analyze(seq, 2)
        self.assertAlmostEqual(metrics[Metric.HIP_ROTATION], 20.0, places=6)
        self.assertAlmostEqual(metrics[Metric.PEAK_HIP_ROTATION], 45.0, places=6)

    def test_joint_angles(self) -> None:
        positions = {
            'left_hip': (345.0, 300.0), 'left_knee': (345.0, 380.0),
            'left_ankle': (345.0, 450.0),
            'left_shoulder': (360.0, 160.0), 'left_elbow': (360.0, 220.0),
            'left_wrist': (420.0, 220.0),
        }
        seq = make_sequence([0], pose_for=lambda i: {'positions': positions})
        metrics = self.bio.analyze(seq, 0)
        self.assertAlmostEqual(metrics[Metric.FRONT_KNEE_ANGLE], 180.0, places=3)
        self.assertAlmostEqual(metrics[Metric.LEAD_ELBOW_ANGLE], 90.0, places=3)

    def test_handedness_selects_the_front_leg(self) -> None:
        positions = {
            'left_hip': (345.0, 300.0), 'left_knee': (345.0, 380.0),
            'left_ankle': (425.0, 380.0),
            'right_hip': (295.0, 300.0), 'right_knee': (295.0, 380.0),
            'right_ankle': (295.0, 450.0),
        }
        seq = make_sequence([0], pose_for=lambda i: {'positions': positions})
        righty = SwingBiomechanics(Handedness.RIGHT).analyze(seq, 0)
        lefty = SwingBiomechanics('left').analyze(seq, 0)
        self.assertAlmostEqual(righty[Metric.FRONT_KNEE_ANGLE], 90.0, places=3)
        self.assertAlmostEqual(lefty[Metric.FRONT_KNEE_ANGLE], 180.0, places=3)

    def test_bat_speed_from_constant_angular_velocity(self) -> None:
        # 2 degrees per frame at 60 fps about the hip midpoint = 120 deg/s
        seq = make_sequence(range(11), fps=60.0, pose_for=lambda i: {
            'positions': {'left_wrist': wrist_on_circle(10.0 + 2.0 * i)}})
        metrics = self.bio.analyze(seq, 10)
        self.assertAlmostEqual(metrics[Metric.BAT_SPEED], 120.0, places=4)
        chord = 2 * 100.0 * math.sin(math.radians(1.0))
        self.assertAlmostEqual(metrics[Metric.HAND_SPEED], chord * 60.0, places=4)

    def test_speeds_skip_frames_missing_from_the_sequence(self) -> None:
        seq = make_sequence([0, 2, 4, 6], fps=60.0, pose_for=lambda i: {
            'positions': {'left_wrist': wrist_on_circle(2.0 * i)}})
        metrics = self.bio.analyze(seq, 6)
        self.assertAlmostEqual(metrics[Metric.BAT_SPEED], 120.0, places=4)

    def test_missing_keypoint_makes_only_dependent_metrics_unavailable(self) -> None:
        seq = make_sequence([0, 1, 2], pose_for=lambda i: {
            'positions': {'left_wrist': wrist_on_circle(2.0 * i)},
            'hidden': ('left_hip', 'right_hip') if i == 2 else ()})
        metrics = self.bio.analyze(seq, 2)

        for metric in (Metric.BAT_SPEED, Metric.HIP_ROTATION, Metric.PEAK_HIP_ROTATION,
                       Metric.HIP_SHOULDER_SEPARATION, Metric.FRONT_KNEE_ANGLE):
            self.assertIsNone(metrics[metric], metric.key)
        self.assertIsNotNone(metrics[Metric.HAND_SPEED])
        self.assertIsNotNone(metrics[Metric.LEAD_ELBOW_ANGLE])
        self.assertIsNotNone(metrics[Metric.SHOULDER_ROTATION])
        self.assertIn('bat_speed', metrics.unavailable())
        self.assertNotIn('hand_speed', metrics.unavailable())

    def test_hidden_lead_wrist_removes_speeds(self) -> None:
        seq = make_sequence([0, 1, 2], pose_for=lambda i: {'hidden': ('left_wrist',)})
        metrics = self.bio.analyze(seq, 2)
        self.assertIsNone(metrics[Metric.BAT_SPEED])
        self.assertIsNone(metrics[Metric.HAND_SPEED])
        self.assertIsNone(metrics[Metric.LEAD_ELBOW_ANGLE])
        self.assertIsNotNone(metrics[Metric.TRAIL_ELBOW_ANGLE])

    def test_reference_frame_outside_sequence(self) -> None:
        seq = make_sequence([0, 1, 2])
        with self.assertLogs('swingsync.biomechanics.angles', level='WARNING'):
            metrics = self.bio.analyze(seq, 5)
        self.assertEqual(metrics.available(), {})
        self.assertEqual(len(metrics.unavailable()), len(Metric))

    def test_record_keeps_unavailable_as_none(self) -> None:
        seq = make_sequence([0], pose_for=lambda i: {'hidden': ('left_wrist',)})
        metrics = self.bio.analyze(seq, 0)
        record = metrics.to_record()
        self.assertEqual(record['reference_frame'], 0)
        self.assertEqual(record['handedness'], 'right')
        self.assertIsNone(record['bat_speed'])
        self.assertEqual(MetricSet.from_record(record), metrics)


class FrameMetricsTests(unittest.TestCase):
    def test_one_row_per_frame_with_nan_for_missing(self) -> None:
        seq = make_sequence([0, 1, 3], pose_for=lambda i: {
            'positions': rotated_hips(10.0 * i),
            'hidden': ('left_ankle',) if i == 3 else ()})
        table = SwingBiomechanics().frame_metrics(seq)

        self.assertEqual(list(table['frame']), [0, 1, 3])
        self.assertAlmostEqual(table['hip_rotation'].iloc[2], 30.0, places=6)
        self.assertTrue(table['front_knee_angle'].isna().iloc[2])
        self.assertFalse(table['front_knee_angle'].isna().iloc[0])


if __name__ == "__main__":
    unittest.main()
