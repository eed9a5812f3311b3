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
Finds the camera images in a folder and creates an :class:`~FeederVision.records.ImageInfo` for each of them. Only ``.jpg``, ``.jpeg`` and ``.png`` files are picked up, regardless of the case of the extension.
"""
from dataclasses import dataclass
from os import walk
from pathlib import Path
from typing import List, Union

from FeederVision.errors import ScanError
from FeederVision.logging import get_logger
from FeederVision.records import ImageInfo

logger = get_logger(__name__)


SUPPORTED_EXTENSIONS = (".jpg", ".jpeg", ".png")


@dataclass(frozen=True)
class ScanOptions:
    recursive: bool = False


def is_supported_image(path: Path) -> bool:
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


def scan_folder(
    root: Union[str, Path], options: ScanOptions = ScanOptions()
) -> List[ImageInfo]:
    """List the images in ``root``, optionally including subfolders. Records are returned sorted by path.

    Args:
        root (Union[str, Path]): Folder to scan
        options (ScanOptions, optional): Scanning options. Defaults to a non-recursive scan.

    Raises:
        ScanError: If ``root`` does not exist or is not a directory

    Returns:
        List[ImageInfo]: One record per image, with ``present=False`` and no classification
    """
    root = Path(root)
    if not root.exists():
        raise ScanError("Path does not exist: {}".format(root))
    if not root.is_dir():
        raise ScanError("Path is not a directory: {}".format(root))

    def on_error(e: OSError):
        logger.warning("Skipping unreadable entry {}: {}".format(e.filename, e))

    files = []
    for dir_path, dir_names, file_names in walk(root, onerror=on_error):
        if not options.recursive:
            dir_names.clear()
        for name in file_names:
            path = Path(dir_path) / name
            if path.is_file() and is_supported_image(path):
                files.append(path)

    logger.debug("Found {} images in {}".format(len(files), root))
    return [ImageInfo(file=path) for path in sorted(files)]
