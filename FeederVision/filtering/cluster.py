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
A two-cluster model of a batch of frame fingerprints, learnt without labels.

A fixed camera produces mostly near-identical frames of the empty scene. Those frames form a tight cluster in Hamming space. Lighting changes or a bumped camera can give a second family of background frames, so two clusters are fitted rather than one. A frame that lies far from even its nearest centroid is unusual for this batch and so likely contains a visitor.

Fitting is a k-means with k=2 adapted to the Hamming metric:

1. ``c0`` is the per-bit majority vote of the whole batch
2. ``c1`` is the fingerprint farthest from ``c0`` (or the complement of ``c0`` for an empty batch)
3. For a fixed number of rounds, assign every fingerprint to the nearer centroid (ties go to ``c0``) then replace each non-empty cluster's centroid with the majority vote of its members. Refinement stops early if both centroids would become the same fingerprint.
4. Record the mean and standard deviation of the in-cluster distances for each centroid
"""
from dataclasses import dataclass
from math import sqrt
from typing import List, Sequence, Tuple

from FeederVision.filtering.fingerprint import (
    HASH_MASK,
    farthest_from,
    hamming_distance,
    majority_vote,
)
from FeederVision.logging import get_logger

logger = get_logger(__name__)


REFINEMENT_ROUNDS = 5
STDDEV_EPSILON = 1e-3


def cluster_stats(
    fingerprints: Sequence[int], centroid: int, assignment: Sequence[int], which: int
) -> Tuple[float, float]:
    """Mean and population standard deviation of the distance from ``centroid`` to the members of cluster ``which``.

    An empty cluster gives ``(0.0, 1.0)``. A standard deviation at or below a small epsilon is replaced by ``1.0`` so the presence band never collapses to zero width.
    """
    distances = [
        hamming_distance(centroid, f)
        for f, a in zip(fingerprints, assignment)
        if a == which
    ]
    if len(distances) < 1:
        return 0.0, 1.0
    mean = sum(distances) / len(distances)
    variance = sum(d * d for d in distances) / len(distances) - mean * mean
    std = sqrt(max(variance, 0.0))
    if std <= STDDEV_EPSILON:
        std = 1.0
    return mean, std


def assign(fingerprints: Sequence[int], c0: int, c1: int) -> List[int]:
    """Label each fingerprint 0 or 1 according to the nearer centroid, ties going to ``c0``"""
    return [
        0 if hamming_distance(f, c0) <= hamming_distance(f, c1) else 1
        for f in fingerprints
    ]


@dataclass(frozen=True)
class ClusterModel:
    """Two fingerprint centroids with the distance statistics of their clusters. Immutable once fitted and safe to share between threads."""

    c0: int
    c1: int
    mean0: float = 0.0
    std0: float = 1.0
    mean1: float = 0.0
    std1: float = 1.0

    @classmethod
    def default(cls) -> "ClusterModel":
        """The model used before any batch has been seen"""
        return cls(c0=0, c1=HASH_MASK)

    @classmethod
    def fit(
        cls, fingerprints: Sequence[int], rounds: int = REFINEMENT_ROUNDS
    ) -> "ClusterModel":
        """Fit the model to a batch of fingerprints

        Args:
            fingerprints (Sequence[int]): The batch, order does not matter
            rounds (int, optional): Number of assign/update rounds. Defaults to 5.

        Returns:
            ClusterModel: The fitted model
        """
        fingerprints = list(fingerprints)
        c0 = majority_vote(fingerprints)
        c1 = farthest_from(c0, fingerprints)
        if c1 is None or c1 == c0:
            c1 = ~c0 & HASH_MASK

        assignment = [0] * len(fingerprints)
        for _ in range(rounds):
            assignment = assign(fingerprints, c0, c1)
            cluster0 = [f for f, a in zip(fingerprints, assignment) if a == 0]
            cluster1 = [f for f, a in zip(fingerprints, assignment) if a == 1]
            new_c0 = majority_vote(cluster0) if cluster0 else c0
            new_c1 = majority_vote(cluster1) if cluster1 else c1
            if new_c0 == new_c1:
                # Centroids must stay distinct; keep the last distinct pair
                break
            c0, c1 = new_c0, new_c1

        mean0, std0 = cluster_stats(fingerprints, c0, assignment, 0)
        mean1, std1 = cluster_stats(fingerprints, c1, assignment, 1)
        logger.debug(
            "Fitted clusters over {} frames: c0={:016x} ({:.2f} +/- {:.2f}), c1={:016x} ({:.2f} +/- {:.2f})".format(
                len(fingerprints), c0, mean0, std0, c1, mean1, std1
            )
        )
        return cls(c0, c1, mean0, std0, mean1, std1)

    def assign(self, fingerprints: Sequence[int]) -> List[int]:
        """Partition fingerprints between the two centroids"""
        return assign(fingerprints, self.c0, self.c1)

    def nearest(self, fingerprint: int) -> Tuple[int, int]:
        """Index of the nearer centroid and the distance to it. Ties go to ``c0``."""
        d0 = hamming_distance(self.c0, fingerprint)
        d1 = hamming_distance(self.c1, fingerprint)
        if d0 <= d1:
            return 0, d0
        return 1, d1

    def threshold(self, which: int, k: float) -> float:
        """Distance beyond which a frame is an outlier of cluster ``which``"""
        if which == 0:
            return self.mean0 + k * self.std0
        return self.mean1 + k * self.std1

    def is_outlier(self, fingerprint: int, k: float) -> bool:
        """`True` if the fingerprint is farther than ``mean + k * std`` from its nearer centroid"""
        which, distance = self.nearest(fingerprint)
        return distance > self.threshold(which, k)
