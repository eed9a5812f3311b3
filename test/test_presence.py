# FeederVision is an AI-assisted image sorter for fixed bird feeder cameras.
# Copyright (C) 2024 FeederVision contributors

# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.

# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.

# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest import TestCase

import numpy as np

from FeederVision.errors import ScanError
from FeederVision.filtering import presence
from FeederVision.filtering.presence import (
    BackgroundDetector,
    HeuristicDetector,
    PresenceDetector,
    apply_presence,
    create_detector,
    scan_and_detect,
)
from FeederVision.records import ImageInfo
from FeederVision.scanning import ScanOptions
from FeederVision.settings import DetectorKind, DetectorSettings
from synthetic import blocky, random_grid, save_corrupt, save_gray, save_gray16


class HeuristicBlankVsShapeTestCase(TestCase):
    def setUp(self):
        self._dir = TemporaryDirectory()
        blank = np.full((64, 64), 255, dtype=np.uint8)
        shape = blank.copy()
        shape[16:48, 16:48] = 0
        self._blank = save_gray(Path(self._dir.name) / "blank.png", blank)
        self._shape = save_gray(Path(self._dir.name) / "shape.png", shape)
        self._detector = HeuristicDetector()

    def tearDown(self):
        self._dir.cleanup()

    def test_blank_is_not_present(self):
        self.assertEqual(self._detector.run_raw(self._blank), 0)
        self.assertFalse(self._detector.detect_present(self._blank))

    def test_contrasting_block_is_present(self):
        self.assertGreaterEqual(self._detector.run_raw(self._shape), 10.0)
        self.assertTrue(self._detector.detect_present(self._shape))

    def test_large_image_is_downscaled(self):
        large = np.full((480, 640), 255, dtype=np.uint8)
        large[120:360, 160:480] = 0
        path = save_gray(Path(self._dir.name) / "large.png", large)
        self.assertTrue(self._detector.detect_present(path))

    def test_sample_is_square(self):
        strip = np.full((8, 640), 255, dtype=np.uint8)
        path = save_gray(Path(self._dir.name) / "strip.png", strip)
        self.assertEqual(self._detector.sample(path).shape, (64, 64))

    def test_wide_strip_keeps_vertical_contrast(self):
        strip = np.full((8, 640), 255, dtype=np.uint8)
        strip[:4] = 0
        path = save_gray(Path(self._dir.name) / "strip.png", strip)
        self.assertGreater(self._detector.run_raw(path), 100.0)
        self.assertTrue(self._detector.detect_present(path))

    def test_16_bit_block_is_present(self):
        pixels = np.full((64, 64), 40000, dtype=np.uint16)
        pixels[16:48, 16:48] = 20000
        path = save_gray16(Path(self._dir.name) / "wide.png", pixels)
        self.assertGreaterEqual(self._detector.run_raw(path), 10.0)
        self.assertTrue(self._detector.detect_present(path))

    def test_16_bit_blank_is_not_present(self):
        pixels = np.full((64, 64), 30000, dtype=np.uint16)
        path = save_gray16(Path(self._dir.name) / "wide.png", pixels)
        self.assertEqual(self._detector.run_raw(path), 0)

    def test_threshold_is_configurable(self):
        strict = HeuristicDetector(stddev_threshold=200.0)
        self.assertFalse(strict.detect_present(self._shape))


class BackgroundDetectorTestCase(TestCase):
    def setUp(self):
        self._dir = TemporaryDirectory()
        root = Path(self._dir.name)
        morning = blocky(random_grid(1))
        evening = blocky(random_grid(2))
        self._background = [
            save_gray(root / "morning_{}.png".format(i), morning) for i in range(4)
        ] + [save_gray(root / "evening_{}.png".format(i), evening) for i in range(2)]
        self._visitor = save_gray(root / "visitor.png", blocky(random_grid(3)))

        self._detector = BackgroundDetector(k=2.5, workers=2)
        self._detector.prepare(self._background)

    def tearDown(self):
        self._dir.cleanup()

    def test_backgrounds_become_centroids(self):
        self.assertNotEqual(self._detector.model.c0, self._detector.model.c1)

    def test_background_frames_not_present(self):
        for path in self._background:
            self.assertFalse(self._detector.detect_present(path))

    def test_new_scene_is_present(self):
        self.assertTrue(self._detector.detect_present(self._visitor))
        self.assertGreater(self._detector.run_raw(self._visitor), 0)

    def test_unreadable_frame_left_out_of_model(self):
        broken = save_corrupt(Path(self._dir.name) / "broken.jpg")
        detector = BackgroundDetector()
        with self.assertLogs(presence.logger, "WARNING"):
            detector.prepare(self._background + [broken])
        self.assertEqual(detector.model, self._detector.model)

    def test_decode_failure_raises_from_detect(self):
        broken = save_corrupt(Path(self._dir.name) / "broken.jpg")
        with self.assertRaises(OSError):
            self._detector.detect_present(broken)


class FixedDetector(PresenceDetector):
    def __init__(self, answers):
        self.answers = answers
        self.prepared_with = None

    def prepare(self, paths):
        self.prepared_with = list(paths)

    def detect_present(self, path):
        answer = self.answers[Path(path).name]
        if isinstance(answer, Exception):
            raise answer
        return answer


class ApplyPresenceTestCase(TestCase):
    def setUp(self):
        self._rows = [
            ImageInfo(Path("a.jpg")),
            ImageInfo(Path("b.jpg")),
            ImageInfo(Path("c.jpg")),
            ImageInfo(Path("a.jpg")),
        ]
        self._detector = FixedDetector(
            {"a.jpg": True, "b.jpg": OSError("cannot identify image file"), "c.jpg": False}
        )

    def test_prepare_gets_whole_batch_in_order(self):
        apply_presence(self._rows, self._detector)
        self.assertEqual(self._detector.prepared_with, [r.file for r in self._rows])

    def test_results_written_by_position(self):
        with self.assertLogs(presence.logger, "WARNING"):
            apply_presence(self._rows, self._detector)
        self.assertEqual([r.present for r in self._rows], [True, False, False, True])

    def test_failure_is_logged_and_not_present(self):
        with self.assertLogs(presence.logger, "WARNING") as logs:
            apply_presence(self._rows, self._detector)
        self.assertTrue(any("b.jpg" in line for line in logs.output))
        self.assertFalse(self._rows[1].present)

    def test_empty_batch(self):
        rows = []
        apply_presence(rows, self._detector)
        self.assertEqual(rows, [])


class ScanAndDetectTestCase(TestCase):
    def setUp(self):
        self._dir = TemporaryDirectory()
        root = Path(self._dir.name)
        blank = np.full((64, 64), 200, dtype=np.uint8)
        shape = blank.copy()
        shape[16:48, 16:48] = 0
        save_gray(root / "1_empty.png", blank)
        save_gray(root / "2_bird.png", shape)
        save_corrupt(root / "3_broken.jpg")

    def tearDown(self):
        self._dir.cleanup()

    def test_scan_then_detect(self):
        with self.assertLogs(presence.logger, "WARNING"):
            rows = scan_and_detect(self._dir.name, ScanOptions(), HeuristicDetector())
        self.assertEqual(
            [(r.file.name, r.present) for r in rows],
            [("1_empty.png", False), ("2_bird.png", True), ("3_broken.jpg", False)],
        )

    def test_missing_root_raises(self):
        with self.assertRaises(ScanError):
            scan_and_detect(
                Path(self._dir.name) / "missing", ScanOptions(), HeuristicDetector()
            )


class CreateDetectorTestCase(TestCase):
    def test_heuristic(self):
        detector = create_detector(
            DetectorSettings(kind=DetectorKind.HEURISTIC, stddev_threshold=5.0, sample_size=32)
        )
        self.assertIsInstance(detector, HeuristicDetector)
        self.assertEqual(detector.stddev_threshold, 5.0)
        self.assertEqual(detector.sample_size, 32)

    def test_background(self):
        detector = create_detector(DetectorSettings(kind=DetectorKind.BACKGROUND, k=3.0))
        self.assertIsInstance(detector, BackgroundDetector)
        self.assertEqual(detector.k, 3.0)
