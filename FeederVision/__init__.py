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
Sorts the stills from a fixed bird feeder camera.

To run the program start it as a module by running (with Python 3.x):
```sh
python -m FeederVision path/to/photos --csv results.csv
```

Each image goes through two stages. First a presence detector, which learns what the empty feeder looks like from the batch itself, decides whether a visitor is in frame. Frames with a visitor are then passed to a species classifier that either names the species or abstains with ``Unknown`` when it is not confident enough.

The stages are designed to be modular so that either detector or the classification network can be exchanged without changing the rest of the pipeline.
"""
__version__ = "0.1.0"
