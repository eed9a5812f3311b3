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
"""
Writes pipeline results to CSV with the columns ``file,present,species,confidence``.

``species`` is ``Unknown`` for an abstention, the species name for an accepted label and empty when the image has no subject or no classification. ``confidence`` is empty in the same cases where there is no classification to report.
"""
from csv import reader, writer
from pathlib import Path
from typing import Iterable, List, Tuple, Union

from numpy import float32, format_float_positional

from FeederVision.logging import get_logger
from FeederVision.records import ImageInfo

logger = get_logger(__name__)


HEADER = ("file", "present", "species", "confidence")


def row_for(info: ImageInfo) -> Tuple[str, str, str, str]:
    species = ""
    confidence = ""
    if info.present and info.classification is not None:
        species = str(info.classification.decision)
        # Shortest single precision decimal, e.g. 0.42 rather than 0.41999998688697815
        confidence = format_float_positional(
            float32(info.classification.confidence), trim="-"
        )
    return (
        str(info.file),
        "true" if info.present else "false",
        species,
        confidence,
    )


def export_csv(rows: Iterable[ImageInfo], path: Union[str, Path]):
    """Write one CSV row per record, preceded by the header

    Args:
        rows (Iterable[ImageInfo]): Records in output order
        path (Union[str, Path]): Destination file, overwritten if it exists
    """
    count = 0
    with open(path, "w", newline="", encoding="utf-8") as f:
        csv_writer = writer(f)
        csv_writer.writerow(HEADER)
        for info in rows:
            csv_writer.writerow(row_for(info))
            count += 1
    logger.info("Wrote {} rows to {}".format(count, path))


def read_csv(path: Union[str, Path]) -> List[List[str]]:
    """Read back an exported file, header row included"""
    with open(path, "r", newline="", encoding="utf-8") as f:
        return [row for row in reader(f)]
