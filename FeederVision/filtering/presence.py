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
This module provides the presence stage of the pipeline: deciding, before any species classification, whether a frame contains a visitor at all. Empty frames of the feeder make up most of a typical batch and do not need to be passed to the neural network.

Every detector implements :class:`PresenceDetector`. :func:`PresenceDetector.prepare` is given the whole batch once and :func:`PresenceDetector.detect_present` is then called for each image, possibly from several threads at once. Two detectors are provided:

- :class:`HeuristicDetector` flags frames whose grayscale contrast is high. It needs no batch step.
- :class:`BackgroundDetector` learns what the empty scene looks like from the batch itself using a :class:`~FeederVision.filtering.cluster.ClusterModel` of perceptual fingerprints, then flags frames that are far from both background clusters.

:func:`apply_presence` drives a detector over a list of records. A frame that fails to decode is logged and marked as not present; it never stops the batch.
"""
from abc import ABCMeta, abstractmethod
from multiprocessing.pool import ThreadPool
from pathlib import Path
from typing import List, Optional, Sequence

import numpy as np
from PIL import Image

from FeederVision.filtering.cluster import ClusterModel
from FeederVision.filtering.fingerprint import dhash_path
from FeederVision.imaging import to_gray8
from FeederVision.logging import get_logger
from FeederVision.records import ImageInfo
from FeederVision.scanning import ScanOptions, scan_folder
from FeederVision.settings import DetectorKind, DetectorSettings

logger = get_logger(__name__)


class PresenceDetector(metaclass=ABCMeta):
    """Interface for the presence stage"""

    def prepare(self, paths: Sequence[Path]):
        """Optionally learn from the whole batch before any decisions are made. Does nothing by default.

        Args:
            paths (Sequence[Path]): Every image in the batch
        """

    @abstractmethod
    def detect_present(self, path: Path) -> bool:
        """Decide whether a single image contains a subject. Decode errors are raised to the caller.

        Args:
            path (Path): The image

        Returns:
            bool: `True` if a subject is present
        """


class HeuristicDetector(PresenceDetector):
    """Flags images whose grayscale standard deviation is at least a threshold. An empty, evenly lit frame has low variance while a visitor adds local contrast."""

    def __init__(self, stddev_threshold: float = 10.0, sample_size: int = 64):
        """
        Args:
            stddev_threshold (float, optional): Threshold on the 0-255 scale. Defaults to 10.0.
            sample_size (int, optional): Images are resized to this many pixels square before measuring, 0 keeps the full resolution. Defaults to 64.
        """
        self.stddev_threshold = stddev_threshold
        self.sample_size = sample_size

    def sample(self, path: Path) -> np.ndarray:
        """Decode an image to 8-bit grayscale and resize it to ``sample_size`` x ``sample_size`` pixels, ignoring the aspect ratio. With ``sample_size`` 0 the full resolution is kept.

        Args:
            path (Path): The image

        Returns:
            np.ndarray: The grayscale pixels, float64
        """
        with Image.open(path) as image:
            gray = to_gray8(image)
        if self.sample_size > 0:
            gray = gray.resize((self.sample_size, self.sample_size), Image.BOX)
        return np.asarray(gray, dtype=np.float64)

    def run_raw(self, path: Path) -> float:
        """Grayscale standard deviation of the sampled image

        Args:
            path (Path): The image

        Returns:
            float: Population standard deviation of the pixel intensities
        """
        return float(self.sample(path).std())

    def detect_present(self, path: Path) -> bool:
        return self.run_raw(path) >= self.stddev_threshold


class BackgroundDetector(PresenceDetector):
    """Flags images that are unusual for the batch they belong to. See :mod:`FeederVision.filtering.cluster` for the model."""

    def __init__(self, k: float = 2.5, workers: Optional[int] = None):
        """
        Args:
            k (float, optional): Number of standard deviations beyond the mean cluster distance at which a frame counts as an outlier. Defaults to 2.5.
            workers (Optional[int], optional): Threads used to fingerprint the batch. Defaults to one per CPU.
        """
        self.k = k
        self.workers = workers or None
        self.model = ClusterModel.default()

    def _try_hash(self, path: Path) -> Optional[int]:
        try:
            return dhash_path(path)
        except Exception as e:
            logger.warning(
                "Could not fingerprint {}, leaving it out of the background model: {}".format(
                    path, e
                )
            )
            return None

    def prepare(self, paths: Sequence[Path]):
        """Fingerprint the batch in parallel and fit the background model. Must complete before any call to :func:`detect_present`."""
        if not paths:
            return
        with ThreadPool(self.workers) as pool:
            hashes = pool.map(self._try_hash, list(paths))
        fingerprints = [h for h in hashes if h is not None]
        if not fingerprints:
            logger.error("No image in the batch could be fingerprinted")
            return
        self.model = ClusterModel.fit(fingerprints)

    def run_raw(self, path: Path) -> float:
        """How far the image is beyond the presence threshold of its nearer cluster, in Hamming bits. Positive means present."""
        which, distance = self.model.nearest(dhash_path(path))
        return distance - self.model.threshold(which, self.k)

    def detect_present(self, path: Path) -> bool:
        return self.model.is_outlier(dhash_path(path), self.k)


def create_detector(settings: DetectorSettings) -> PresenceDetector:
    """Build the presence detector selected in the settings"""
    if settings.kind == DetectorKind.HEURISTIC:
        return HeuristicDetector(
            stddev_threshold=settings.stddev_threshold,
            sample_size=settings.sample_size,
        )
    return BackgroundDetector(k=settings.k, workers=settings.workers)


def apply_presence(
    rows: List[ImageInfo], detector: PresenceDetector, workers: Optional[int] = None
):
    """Run a detector over the records, setting ``present`` on each in place.

    The detector is prepared with the whole batch first, then every record is decided independently across a pool of threads. A record whose image cannot be processed is logged and set to ``present=False``.

    Args:
        rows (List[ImageInfo]): Records to update
        detector (PresenceDetector): The presence stage to apply
        workers (Optional[int], optional): Threads used for the decisions. Defaults to one per CPU.
    """
    detector.prepare([info.file for info in rows])

    def decide(info: ImageInfo) -> bool:
        try:
            return detector.detect_present(info.file)
        except Exception as e:
            logger.warning(
                "Presence detection failed for {}: {}".format(info.file, e)
            )
            return False

    if not rows:
        return
    with ThreadPool(workers or None) as pool:
        results = pool.map(decide, rows)
    for info, present in zip(rows, results):
        info.present = present
    logger.info(
        "Presence stage: {} of {} images contain a subject".format(
            sum(results), len(rows)
        )
    )


def scan_and_detect(
    root: Path, options: ScanOptions, detector: PresenceDetector
) -> List[ImageInfo]:
    """Scan a folder and immediately run the presence stage

    Raises:
        ScanError: If ``root`` does not exist or is not a directory
    """
    rows = scan_folder(root, options)
    apply_presence(rows, detector)
    return rows
