import unittest

import numpy as np

from swingsync.constants import IMPACT_COLOR_BGR, MODEL_COLOR_BGR, SUBJECT_COLOR_BGR
from swingsync.render.overlay import (RenderMode, SkeletonRenderer, align_to_canonical,
                                      canonical_index, render_frame)
from swingsync.video.isolation import BoundingBox, IsolationMask

from tests.fakes import make_sequence

BACKGROUND = 100


def blank_frame():
    return np.full((480, 640, 3), BACKGROUND, dtype=np.uint8)


def pixel(image, x, y):
    return tuple(int(v) for v in image[y, x])


class CanonicalIndexTests(unittest.TestCase):
    def test_play_head_maps_by_floor_at_canonical_rate(self) -> None:
        self.assertEqual(canonical_index(0.1, 120.0), 12)
        self.assertEqual(canonical_index(1 / 3, 120.0), 40)
        self.assertEqual(canonical_index(0.0999, 120.0), 11)
        self.assertEqual(canonical_index(-0.5, 120.0), 0)

    def test_align_moves_sequence_and_masks_onto_canonical_indices(self) -> None:
        seq = make_sequence([0, 1, 5], fps=60.0)
        mask = IsolationMask(5, 2, 2, bytes(4), BoundingBox(0, 0, 2, 2))
        aligned, masks = align_to_canonical(seq, [mask], 120.0)
        self.assertEqual(aligned.indices, [0, 2, 10])
        self.assertEqual([m.frame_index for m in masks], [10])


class RendererTests(unittest.TestCase):
    def setUp(self) -> None:
        self.renderer = SkeletonRenderer()
        self.model = make_sequence([0, 12], fps=120.0)
        self.subject = make_sequence([0], fps=120.0)

    def test_identical_calls_are_pixel_identical(self) -> None:
        first = self.renderer.render(blank_frame(), 0.1, self.model, self.subject)
        second = self.renderer.render(blank_frame(), 0.1, self.model, self.subject)
        np.testing.assert_array_equal(first, second)

    def test_input_frame_is_not_modified(self) -> None:
        frame = blank_frame()
        self.renderer.render(frame, 0.0, self.model, self.subject)
        self.assertTrue((frame == BACKGROUND).all())

    def test_subject_missing_at_index_is_omitted(self) -> None:
        with_subject = self.renderer.render(blank_frame(), 0.1, self.model, self.subject)
        model_only = self.renderer.render(blank_frame(), 0.1, self.model, None)
        np.testing.assert_array_equal(with_subject, model_only)

        both = self.renderer.render(blank_frame(), 0.0, self.model, self.subject)
        self.assertFalse(np.array_equal(both, model_only))

    def test_skeleton_drawn_in_its_colour(self) -> None:
        out = self.renderer.render(blank_frame(), 0.1, self.model, None)
        self.assertEqual(pixel(out, 360, 160), MODEL_COLOR_BGR)

        out = self.renderer.render(blank_frame(), 0.0, None, self.subject)
        self.assertEqual(pixel(out, 360, 160), SUBJECT_COLOR_BGR)

    def test_low_visibility_endpoint_drops_the_edge(self) -> None:
        hidden = make_sequence([0], fps=120.0, pose_for=lambda i: {'hidden': ('left_wrist',)})
        out = self.renderer.render(blank_frame(), 0.0, hidden, None)
        self.assertEqual(pixel(out, 385, 250), (BACKGROUND,) * 3)

        out = self.renderer.render(blank_frame(), 0.0, self.model, None)
        self.assertEqual(pixel(out, 385, 250), MODEL_COLOR_BGR)

    def test_fully_invisible_skeleton_draws_nothing(self) -> None:
        faint = make_sequence([0], fps=120.0, pose_for=lambda i: {'visibility': 0.4})
        out = self.renderer.render(blank_frame(), 0.0, faint, faint)
        np.testing.assert_array_equal(out, blank_frame())

    def test_impact_marker_only_on_impact_index(self) -> None:
        marked = self.renderer.render(blank_frame(), 0.1, impact_frame=12)
        self.assertEqual(pixel(marked, 15, 10), IMPACT_COLOR_BGR)

        unmarked = self.renderer.render(blank_frame(), 0.1, impact_frame=13)
        self.assertEqual(pixel(unmarked, 15, 10), (BACKGROUND,) * 3)

    def test_split_draws_each_skeleton_in_its_half(self) -> None:
        out = self.renderer.render(blank_frame(), 0.0, self.model, self.subject,
                                   mode='split')
        self.assertEqual(out.shape, (480, 640, 3))
        # Letterbox band above the scaled video
        self.assertEqual(pixel(out, 100, 50), (0, 0, 0))
        # Left shoulder at half scale, offset into each half
        self.assertEqual(pixel(out, 180, 200), MODEL_COLOR_BGR)
        self.assertEqual(pixel(out, 500, 200), SUBJECT_COLOR_BGR)

    def test_isolation_dims_outside_the_mask(self) -> None:
        coverage = np.zeros((12, 16), dtype=np.uint8)
        coverage[:, :8] = 255
        mask = IsolationMask.from_array(12, coverage, BoundingBox(0, 0, 320, 480))

        out = self.renderer.render(blank_frame(), 0.1, masks=[mask], show_isolation=True)
        self.assertEqual(pixel(out, 100, 240), (BACKGROUND,) * 3)
        self.assertEqual(pixel(out, 600, 240), (19, 19, 19))

        hidden = self.renderer.render(blank_frame(), 0.1, masks=[mask], show_isolation=False)
        np.testing.assert_array_equal(hidden, blank_frame())

    def test_draws_into_supplied_surface(self) -> None:
        surface = np.zeros((480, 640, 3), dtype=np.uint8)
        out = self.renderer.render(blank_frame(), 0.0, self.model, out=surface)
        self.assertIs(out, surface)
        with self.assertRaises(ValueError):
            self.renderer.render(blank_frame(), 0.0, out=np.zeros((10, 10, 3), np.uint8))

    def test_mode_accepts_enum_or_string(self) -> None:
        a = self.renderer.render(blank_frame(), 0.0, self.model, mode=RenderMode.SPLIT)
        b = self.renderer.render(blank_frame(), 0.0, self.model, mode='split')
        np.testing.assert_array_equal(a, b)

    def test_render_frame_matches_default_renderer(self) -> None:
        a = render_frame(blank_frame(), 0.1, self.model, self.subject, impact_frame=12)
        b = self.renderer.render(blank_frame(), 0.1, self.model, self.subject, impact_frame=12)
        np.testing.assert_array_equal(a, b)


if __name__ == "__main__":
    unittest.main()
