import tempfile
import unittest
from pathlib import Path
from unittest import mock

import cv2
import numpy as np

from swingsync.render.player import PlaybackController, render_to_file
from swingsync.video.isolation import BoundingBox, IsolationMask, masks_by_index

from tests.fakes import make_sequence


class PlaybackControllerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.controller = PlaybackController(2.0, canonical_fps=120.0, step_frames=5)

    def test_seek_clamps_to_duration(self) -> None:
        self.assertEqual(self.controller.seek(3.0), 2.0)
        self.assertEqual(self.controller.seek(-1.0), 0.0)
        self.controller.seek(0.5)
        self.assertEqual(self.controller.canonical_frame, 60)

    def test_step_moves_by_canonical_frames_and_pauses(self) -> None:
        self.controller.play()
        self.assertAlmostEqual(self.controller.step(), 5 / 120)
        self.assertFalse(self.controller.playing)
        self.assertAlmostEqual(self.controller.step(-1), 4 / 120)
        self.assertEqual(self.controller.step(-50), 0.0)

    def test_advance_only_while_playing_and_stops_at_end(self) -> None:
        self.controller.advance(0.5)
        self.assertEqual(self.controller.current_time, 0.0)

        self.controller.play()
        self.assertEqual(self.controller.advance(0.5), 0.5)
        self.assertEqual(self.controller.advance(5.0), 2.0)
        self.assertFalse(self.controller.playing)

        self.controller.play()
        self.assertEqual(self.controller.current_time, 0.0)

    def test_toggle(self) -> None:
        self.controller.toggle()
        self.assertTrue(self.controller.playing)
        self.controller.toggle()
        self.assertFalse(self.controller.playing)


class RenderToFileTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.source = Path(self.tmp.name) / 'clip.avi'
        writer = cv2.VideoWriter(str(self.source), cv2.VideoWriter_fourcc(*'MJPG'), 30.0, (64, 48))
        for _ in range(15):
            writer.write(np.full((48, 64, 3), 90, dtype=np.uint8))
        writer.release()

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_writes_every_source_frame(self) -> None:
        seq = make_sequence([0, 4, 8], fps=120.0)
        output = Path(self.tmp.name) / 'out.mp4'
        written = render_to_file(self.source, output, model=seq, subject=seq,
                                 impact_frame=8, show_progress=False)

        self.assertEqual(written, 15)
        self.assertTrue(output.exists())

    def test_mask_index_built_once_per_export(self) -> None:
        masks = [IsolationMask(i, 16, 12, bytes(16 * 12), BoundingBox(0, 0, 64, 48))
                 for i in (0, 8, 16)]
        output = Path(self.tmp.name) / 'masked.mp4'
        with mock.patch('swingsync.render.player.masks_by_index',
                        wraps=masks_by_index) as player_index, \
                mock.patch('swingsync.render.overlay.masks_by_index') as per_tick_index:
            written = render_to_file(self.source, output, masks=masks,
                                     show_isolation=True, show_progress=False)

        self.assertEqual(written, 15)
        self.assertEqual(player_index.call_count, 1)
        per_tick_index.assert_not_called()


if __name__ == "__main__":
    unittest.main()
