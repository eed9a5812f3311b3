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
The species stage: image preprocessing and the neural network classifier with its abstention policy.
"""
from FeederVision.classification.species import (
    InferenceContext,
    SpeciesClassifier,
    apply_threshold,
)
