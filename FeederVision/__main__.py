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
from argparse import ArgumentParser
from sys import exit

from FeederVision import __version__
from FeederVision.classification.species import InferenceContext, SpeciesClassifier
from FeederVision.errors import ClassifierSetupError, ScanError
from FeederVision.export import export_csv
from FeederVision.filtering.presence import create_detector
from FeederVision.logging import get_logger, set_level
from FeederVision.pipeline import Pipeline
from FeederVision.scanning import ScanOptions
from FeederVision.settings import DEFAULT_SETTINGS_PATH, DetectorKind, load_settings

logger = get_logger(__name__)


argparse = ArgumentParser(
    prog="FeederVision",
    description="Sort bird feeder camera stills into empty frames and visiting species",
)
argparse.add_argument("folder", help="Folder containing the camera images")
argparse.add_argument(
    "--recursive", action="store_true", help="Also scan subfolders"
)
argparse.add_argument("--csv", metavar="OUT", help="Write the results to this CSV file")
argparse.add_argument(
    "--settings",
    default=DEFAULT_SETTINGS_PATH,
    help="Settings file (default: %(default)s)",
)
argparse.add_argument(
    "--detector",
    choices=[kind.name.lower() for kind in DetectorKind],
    help="Override the presence detector from the settings",
)
argparse.add_argument(
    "--no-classify",
    action="store_true",
    help="Only run the presence stage",
)
argparse.add_argument(
    "--version", action="version", version="%(prog)s " + __version__
)
args = argparse.parse_args()


settings = load_settings(args.settings)
set_level(settings.logging.level)
if args.detector is not None:
    settings.detector.kind = DetectorKind[args.detector.upper()]

classifier = None
if not args.no_classify:
    try:
        classifier = SpeciesClassifier(settings.classifier, InferenceContext())
    except ClassifierSetupError as e:
        logger.error("Species classification disabled: {}".format(e))


def report_progress(completed: int, total: int):
    print("\rClassified {}/{}".format(completed, total), end="", flush=True)
    if completed == total:
        print()


pipeline = Pipeline(settings.pipeline, create_detector(settings.detector), classifier)
try:
    rows = pipeline.run(
        args.folder,
        ScanOptions(recursive=args.recursive or settings.scan.recursive),
        progress=report_progress,
    )
except ScanError as e:
    logger.error(e)
    exit(1)

if not rows:
    print("No images found")
    exit(0)

present = [info for info in rows if info.present]
print("{} images, {} with a visitor".format(len(rows), len(present)))
for info in present:
    if info.classification is not None:
        print(
            "  {}: {} ({:.0%})".format(
                info.file, info.classification.decision, info.classification.confidence
            )
        )

if args.csv:
    export_csv(rows, args.csv)
