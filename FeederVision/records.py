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
The per-image records that flow through the pipeline. A folder scan creates one :class:`ImageInfo` per file with ``present=False`` and no classification. The presence stage and then the species classifier update these records in place, and the CSV exporter reads them back out.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


UNKNOWN = "Unknown"


@dataclass(frozen=True)
class Decision:
    """Either a species label or an abstention. Use :func:`unknown` and :func:`label` to construct."""

    species: Optional[str] = None

    @classmethod
    def unknown(cls) -> "Decision":
        return cls(None)

    @classmethod
    def label(cls, species: str) -> "Decision":
        return cls(species)

    @property
    def is_unknown(self) -> bool:
        return self.species is None

    def __str__(self) -> str:
        return UNKNOWN if self.is_unknown else self.species


@dataclass(frozen=True)
class Classification:
    """Outcome of the species classifier for one image.

    ``confidence`` is the top-1 probability whether or not the label was accepted. ``top_label`` is the arg-max species even for an abstention, which lets the threshold be changed later without running the model again.
    """

    decision: Decision
    confidence: float
    top_label: Optional[str] = None


@dataclass
class ImageInfo:
    """Result record for one image"""

    file: Path
    present: bool = False
    classification: Optional[Classification] = None

    def reset(self):
        """Return the record to the safe default used after a per-image failure"""
        self.present = False
        self.classification = None
