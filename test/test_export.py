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

from FeederVision.export import HEADER, export_csv, read_csv, row_for
from FeederVision.records import Classification, Decision, ImageInfo


class ExportRoundTripTestCase(TestCase):
    def setUp(self):
        self._dir = TemporaryDirectory()
        self._path = Path(self._dir.name) / "results.csv"
        rows = [
            ImageInfo(Path("a.jpg"), present=False, classification=None),
            ImageInfo(
                Path("b.jpg"),
                present=True,
                classification=Classification(Decision.unknown(), 0.42),
            ),
            ImageInfo(
                Path("c.jpg"),
                present=True,
                classification=Classification(Decision.label("Sparrow"), 0.91),
            ),
        ]
        export_csv(rows, self._path)
        self._read = read_csv(self._path)

    def tearDown(self):
        self._dir.cleanup()

    def test_header(self):
        self.assertEqual(self._read[0], ["file", "present", "species", "confidence"])

    def test_rows(self):
        self.assertEqual(
            self._read[1:],
            [
                ["a.jpg", "false", "", ""],
                ["b.jpg", "true", "Unknown", "0.42"],
                ["c.jpg", "true", "Sparrow", "0.91"],
            ],
        )


class RowFormattingTestCase(TestCase):
    def test_not_present_hides_classification(self):
        info = ImageInfo(
            Path("x.png"),
            present=False,
            classification=Classification(Decision.label("Robin"), 0.3),
        )
        self.assertEqual(row_for(info), ("x.png", "false", "", ""))

    def test_present_without_classification(self):
        self.assertEqual(row_for(ImageInfo(Path("x.png"), present=True)), ("x.png", "true", "", ""))

    def test_single_precision_confidence_is_plain_decimal(self):
        info = ImageInfo(
            Path("x.png"),
            present=True,
            classification=Classification(Decision.label("Robin"), float(np.float32(0.91))),
        )
        self.assertEqual(row_for(info)[3], "0.91")

    def test_small_confidence_has_no_exponent(self):
        info = ImageInfo(
            Path("x.png"),
            present=True,
            classification=Classification(Decision.unknown(), 0.00001),
        )
        self.assertEqual(row_for(info)[3], "0.00001")

    def test_header_constant(self):
        self.assertEqual(HEADER, ("file", "present", "species", "confidence"))
