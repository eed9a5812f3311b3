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
Exceptions raised by the pipeline. There are three kinds:

- :class:`ScanError` for an unusable scan root, raised before any processing begins
- :class:`ClassifierSetupError` when a :class:`~FeederVision.classification.species.SpeciesClassifier` cannot be constructed
- :class:`InferenceError` for a single image the classifier could not score

Only the first two ever reach the caller of a batch operation. Per-image failures are logged and resolved to ``present=False`` by the batch drivers.
"""


class FeederVisionError(Exception):
    """Base class for all errors raised by this package"""


class ScanError(FeederVisionError):
    """The scan root does not exist or is not a directory"""


class ClassifierSetupError(FeederVisionError):
    """The model or labels could not be loaded"""


class InferenceError(FeederVisionError):
    """Inference for one image failed or produced unusable output"""
