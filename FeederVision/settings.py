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
Settings for the pipeline are held in nested dataclasses and loaded from a JSON file. Any missing or malformed file falls back to the defaults defined here, with a warning logged.

An example ``settings.json``:

.. code:: json

   {
       "logging": {"level": "INFO"},
       "scan": {"recursive": false},
       "detector": {"kind": "BACKGROUND", "stddev_threshold": 10.0, "sample_size": 64, "k": 2.5, "workers": 0},
       "classifier": {
           "model_path": "models/feeder_species.onnx",
           "labels_path": "models/labels.txt",
           "input_size": 224,
           "presence_threshold": 0.5,
           "mean": [0.485, 0.456, 0.406],
           "std": [0.229, 0.224, 0.225],
           "background_labels": ["achtergrond"]
       },
       "pipeline": {"gate_on_presence": true}
   }
"""
from json import load, JSONDecodeError
from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple

from FeederVision.logging import get_logger

logger = get_logger(__name__)


DEFAULT_SETTINGS_PATH = "FeederVision/settings.json"


class DetectorKind(Enum):
    """Which presence detector to build for stage A"""

    HEURISTIC = 0
    BACKGROUND = 1


@dataclass
class LoggingSettings:
    level: str = "INFO"


@dataclass
class ScanSettings:
    recursive: bool = False


@dataclass
class DetectorSettings:
    kind: DetectorKind = DetectorKind.BACKGROUND
    stddev_threshold: float = 10.0
    sample_size: int = 64
    k: float = 2.5
    workers: int = 0  # 0 lets the pool pick one worker per CPU


@dataclass
class ClassifierSettings:
    model_path: str = "models/feeder_species.onnx"
    labels_path: str = "models/labels.txt"
    input_size: int = 224
    presence_threshold: float = 0.5
    mean: Tuple[float, float, float] = (0.485, 0.456, 0.406)
    std: Tuple[float, float, float] = (0.229, 0.224, 0.225)
    background_labels: Tuple[str, ...] = ()


@dataclass
class PipelineSettings:
    gate_on_presence: bool = True


@dataclass
class Settings:
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    scan: ScanSettings = field(default_factory=ScanSettings)
    detector: DetectorSettings = field(default_factory=DetectorSettings)
    classifier: ClassifierSettings = field(default_factory=ClassifierSettings)
    pipeline: PipelineSettings = field(default_factory=PipelineSettings)


def _detector_settings(settings_json: dict) -> DetectorSettings:
    values = dict(settings_json)
    kind = values.pop("kind", DetectorKind.BACKGROUND.name)
    if isinstance(kind, str):
        try:
            kind = DetectorKind[kind.upper()]
        except KeyError:
            raise ValueError("Unknown detector kind `{}`".format(kind)) from None
    else:
        kind = DetectorKind(kind)
    return DetectorSettings(kind=kind, **values)


def _classifier_settings(settings_json: dict) -> ClassifierSettings:
    values = dict(settings_json)
    for key in ("mean", "std", "background_labels"):
        if key in values:
            values[key] = tuple(values[key])
    return ClassifierSettings(**values)


def load_settings(path: str = DEFAULT_SETTINGS_PATH) -> Settings:
    """Load settings from a JSON file. Missing sections are an error, in which case the defaults are returned.

    Args:
        path (str, optional): Location of the settings file. Defaults to ``FeederVision/settings.json``.

    Returns:
        Settings: The loaded settings, or the defaults if the file could not be used
    """
    try:
        with open(path, "rb") as f:
            try:
                settings_json = load(f)
            except JSONDecodeError:
                logger.warning(
                    "Malformed settings.json, using some defaults (JSONDecodeError)"
                )
                return Settings()

            try:
                return Settings(
                    LoggingSettings(**settings_json["logging"]),
                    ScanSettings(**settings_json["scan"]),
                    _detector_settings(settings_json["detector"]),
                    _classifier_settings(settings_json["classifier"]),
                    PipelineSettings(**settings_json["pipeline"]),
                )
            except KeyError as e:
                logger.warning(
                    "Badly formatted settings.json, using defaults (KeyError `{}`)".format(
                        e
                    )
                )
                return Settings()
            except (TypeError, ValueError) as e:
                logger.warning(
                    "Invalid value in settings.json, using defaults ({})".format(e)
                )
                return Settings()

    except FileNotFoundError:
        logger.warning(
            "The settings.json file could not be found, starting with defaults"
        )
        return Settings()
