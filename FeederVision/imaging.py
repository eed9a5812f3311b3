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
Pillow decodes 16-bit grayscale files (e.g. 16-bit PNG or TIFF) to the ``I;16`` or ``I`` modes. ``Image.convert`` clips those values to 0-255 rather than scaling them, so a normally exposed 16-bit frame would come out almost entirely white. The helpers here rescale such images to 8 bits before any further conversion.
"""
import numpy as np
from PIL import Image


_WIDE_GRAY_MODES = ("I;16", "I;16L", "I;16B", "I;16N", "I")


def to_gray8(image: Image.Image) -> Image.Image:
    """Convert an image to 8-bit grayscale (mode ``L``). Wide grayscale modes keep their top 8 bits; ``I`` is read as 16-bit data.

    Args:
        image (Image.Image): A decoded image of any mode

    Returns:
        Image.Image: The grayscale image
    """
    if image.mode in _WIDE_GRAY_MODES:
        pixels = np.asarray(image).astype(np.int64)
        pixels = np.clip(pixels, 0, 0xFFFF) >> 8
        return Image.fromarray(pixels.astype(np.uint8))
    return image.convert("L")


def to_rgb8(image: Image.Image) -> Image.Image:
    """Convert an image to 8-bit RGB, rescaling wide grayscale modes as :func:`to_gray8` does"""
    if image.mode in _WIDE_GRAY_MODES:
        return to_gray8(image).convert("RGB")
    return image.convert("RGB")
