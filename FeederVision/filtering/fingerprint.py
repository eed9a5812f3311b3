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
Perceptual fingerprints of camera frames and the Hamming-space operations used to compare them.

A fingerprint is a 64-bit difference hash (dHash). The image is reduced to grayscale and resized to a 9x8 grid. For each of the 8 rows the 8 horizontally adjacent pixel pairs are compared and bit ``row * 8 + col`` is set when the left pixel is brighter than the right one. The result depends only on the coarse structure of the frame, so it is stable under rescaling and recompression, but changes when something new appears in front of the camera.

Fingerprints are plain Python ``int`` values in ``[0, 2**64)``.
"""
from pathlib import Path
from typing import Iterable, List, Optional, Union

import numpy as np
from PIL import Image

from FeederVision.imaging import to_gray8


HASH_BITS = 64
HASH_MASK = (1 << HASH_BITS) - 1

_GRID_WIDTH = 9
_GRID_HEIGHT = 8

# Bit weights for row-major packing of an (8, 8) boolean grid
_BIT_WEIGHTS = np.left_shift(
    np.uint64(1), np.arange(HASH_BITS, dtype=np.uint64)
).reshape(_GRID_HEIGHT, _GRID_WIDTH - 1)


def dhash(image: Image.Image) -> int:
    """Compute the 64-bit horizontal difference hash of an image

    Args:
        image (Image.Image): A decoded image of any mode or resolution

    Returns:
        int: The fingerprint
    """
    small = to_gray8(image).resize((_GRID_WIDTH, _GRID_HEIGHT), Image.NEAREST)
    pixels = np.asarray(small, dtype=np.int16)
    bits = pixels[:, :-1] > pixels[:, 1:]
    return int(np.bitwise_or.reduce(_BIT_WEIGHTS[bits], initial=np.uint64(0)))


def dhash_path(path: Union[str, Path]) -> int:
    """Decode the image at ``path`` and fingerprint it. Decode errors are raised to the caller.

    Args:
        path (Union[str, Path]): Image file

    Returns:
        int: The fingerprint
    """
    with Image.open(path) as image:
        return dhash(image)


def hamming_distance(a: int, b: int) -> int:
    """Number of differing bits between two fingerprints"""
    return bin((a ^ b) & HASH_MASK).count("1")


def to_bits(fingerprint: int) -> np.ndarray:
    """Unpack a fingerprint into a length 64 array of 0/1, least significant bit first"""
    return (np.uint64(fingerprint) >> np.arange(HASH_BITS, dtype=np.uint64)) & np.uint64(1)


def from_bits(bits: np.ndarray) -> int:
    """Inverse of :func:`to_bits`"""
    out = 0
    for i in np.flatnonzero(bits):
        out |= 1 << int(i)
    return out


def majority_vote(fingerprints: Iterable[int]) -> int:
    """Per-bit majority of a set of fingerprints. A bit is set when it is set in at least half of the inputs, so ties set the bit. An empty input gives ``0``.

    This is the Hamming-space equivalent of a mean and serves as the centroid of a cluster.

    Args:
        fingerprints (Iterable[int]): The fingerprints to combine

    Returns:
        int: The centroid fingerprint
    """
    fingerprints = list(fingerprints)
    if not fingerprints:
        return 0
    counts = np.zeros(HASH_BITS, dtype=np.int64)
    for fingerprint in fingerprints:
        counts += to_bits(fingerprint).astype(np.int64)
    return from_bits(counts * 2 >= len(fingerprints))


def farthest_from(centre: int, fingerprints: List[int]) -> Optional[int]:
    """The first fingerprint with the largest Hamming distance to ``centre``, or ``None`` for an empty list"""
    if not fingerprints:
        return None
    return max(fingerprints, key=lambda f: hamming_distance(centre, f))
