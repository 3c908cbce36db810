import math
import unittest

from swingsync.config import ExtractionOptions
from swingsync.video.sampler import FrameSampler, sampling_rate


class SamplerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.sampler = FrameSampler(frame_cap=600, rate_floor=30.0, native_ceiling=60.0)

    def test_short_clip_samples_at_native_ceiling(self) -> None:
        plan = self.sampler.plan(10.0)
        self.assertEqual(plan.rate, 60.0)
        self.assertEqual(plan.count, 600)

    def test_long_clip_is_held_at_rate_floor(self) -> None:
        plan = self.sampler.plan(40.0)
        self.assertEqual(plan.rate, 30.0)
        self.assertEqual(plan.count, 1200)

    def test_mid_length_clip_is_capped_at_frame_cap(self) -> None:
        plan = self.sampler.plan(15.0)
        self.assertAlmostEqual(plan.rate, 40.0)
        self.assertEqual(plan.count, 600)

    def test_count_matches_floor_of_duration_times_rate(self) -> None:
        for duration in [0.5, 1.0, 2.5, 7.0, 10.0, 11.0, 13.3, 19.9, 20.0, 33.3, 40.0, 60.0]:
            with self.subTest(duration=duration):
                rate = min(60.0, max(30.0, 600 / duration))
                plan = self.sampler.plan(duration)
                self.assertAlmostEqual(plan.rate, rate)
                self.assertGreaterEqual(plan.rate, 30.0)
                self.assertEqual(plan.count, math.floor(duration * rate + 1e-9))

    def test_timestamps_are_sample_index_over_rate(self) -> None:
        plan = self.sampler.plan(2.0)
        self.assertEqual(plan.timestamps[0], 0.0)
        self.assertAlmostEqual(plan.timestamps[7], 7 / 60)
        self.assertLess(plan.timestamps[-1], 2.0)

    def test_rejects_non_positive_duration(self) -> None:
        with self.assertRaises(ValueError):
            sampling_rate(0.0)
        with self.assertRaises(ValueError):
            self.sampler.plan(-1.0)

    def test_from_options_uses_extraction_defaults(self) -> None:
        sampler = FrameSampler.from_options(ExtractionOptions())
        self.assertEqual((sampler.frame_cap, sampler.rate_floor, sampler.native_ceiling),
                         (600, 30.0, 60.0))


if __name__ == "__main__":
    unittest.main()
