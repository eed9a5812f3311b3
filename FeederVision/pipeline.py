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
A simple interface to the complete sorting pipeline is provided by this module. A folder is scanned for images, the :class:`~FeederVision.filtering.presence.PresenceDetector` decides which frames contain a visitor, and the :class:`~FeederVision.classification.species.SpeciesClassifier` names the species.

How the two stages combine is set by :attr:`~FeederVision.settings.PipelineSettings.gate_on_presence`:

- ``True`` (default): only frames the presence stage marked as present are passed to the classifier. Empty frames keep ``present=False`` and no classification.
- ``False``: the classifier runs on every frame and its accept/abstain outcome alone sets ``present``. The presence stage still runs, so its result is logged, but it does not filter.

The classifier is optional. Without one, the pipeline reports the presence stage only.
"""
from pathlib import Path
from typing import List, Optional, Union

from FeederVision.classification.species import ProgressCallback, SpeciesClassifier
from FeederVision.filtering.presence import PresenceDetector, apply_presence
from FeederVision.logging import get_logger
from FeederVision.records import ImageInfo
from FeederVision.scanning import ScanOptions, scan_folder
from FeederVision.settings import PipelineSettings

logger = get_logger(__name__)


class Pipeline:
    """Wrapper for the complete presence and species pipeline"""

    def __init__(
        self,
        settings: PipelineSettings,
        detector: PresenceDetector,
        classifier: Optional[SpeciesClassifier] = None,
    ):
        """
        Args:
            settings (PipelineSettings): How the stages are combined
            detector (PresenceDetector): The presence stage
            classifier (Optional[SpeciesClassifier], optional): The species stage. Defaults to None, skipping classification.
        """
        self.gate_on_presence = settings.gate_on_presence
        self._detector = detector
        self._classifier = classifier

    def process(
        self, rows: List[ImageInfo], progress: Optional[ProgressCallback] = None
    ) -> List[ImageInfo]:
        """Run both stages over scanned records, updating them in place

        Args:
            rows (List[ImageInfo]): Records from a folder scan
            progress (Optional[ProgressCallback], optional): Passed to the classifier. Defaults to None.

        Returns:
            List[ImageInfo]: The same records, in the same order
        """
        apply_presence(rows, self._detector)
        if self._classifier is None:
            return rows

        if self.gate_on_presence:
            to_classify = [info for info in rows if info.present]
        else:
            to_classify = list(rows)
            for info in to_classify:
                info.present = False
        logger.info("Classifying {} of {} images".format(len(to_classify), len(rows)))
        self._classifier.classify_with_progress(to_classify, progress)
        return rows

    def run(
        self,
        root: Union[str, Path],
        options: ScanOptions = ScanOptions(),
        progress: Optional[ProgressCallback] = None,
    ) -> List[ImageInfo]:
        """Scan ``root`` then process the records

        Raises:
            ScanError: If ``root`` does not exist or is not a directory
        """
        rows = scan_folder(root, options)
        return self.process(rows, progress)
