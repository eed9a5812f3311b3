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
Turns a decoded image into the input tensor expected by the species network: a float32 array of shape ``(1, 3, H, W)`` with each channel normalised as ``((pixel / 255) - mean) / std``.
"""
from pathlib import Path
from typing import Sequence, Union

import cv2
import numpy as np
from PIL import Image

from FeederVision.imaging import to_rgb8


def load_rgb(path: Union[str, Path]) -> np.ndarray:
    """Decode an image file to an ``(H, W, 3)`` uint8 RGB array. Decode errors are raised to the caller."""
    with Image.open(path) as image:
        return np.asarray(to_rgb8(image))


def preprocess(
    image: np.ndarray,
    input_size: int,
    mean: Sequence[float],
    std: Sequence[float],
) -> np.ndarray:
    """Resize and normalise an RGB image for the network

    Args:
        image (np.ndarray): ``(H, W, 3)`` uint8 RGB image
        input_size (int): Side of the square network input
        mean (Sequence[float]): Per-channel mean on the 0-1 scale, RGB order
        std (Sequence[float]): Per-channel standard deviation on the 0-1 scale, RGB order

    Returns:
        np.ndarray: Channel-first float32 tensor of shape ``(1, 3, input_size, input_size)``
    """
    resized = cv2.resize(
        image, (input_size, input_size), interpolation=cv2.INTER_LINEAR
    )
    scaled = resized.astype(np.float32) / 255.0
    normalised = (scaled - np.asarray(mean, dtype=np.float32)) / np.asarray(
        std, dtype=np.float32
    )
    return np.ascontiguousarray(normalised.transpose(2, 0, 1)[np.newaxis, ...])
