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
This module provides the species classification stage. The input to :class:`SpeciesClassifier` is an image file and the output a :class:`~FeederVision.records.Classification`: the most likely species and the probability the network assigns to it.

The network is any single-image classifier that OpenCV's DNN module can load (ONNX, TensorFlow, Caffe, Darknet, ...), taking a ``(1, 3, H, W)`` normalised RGB tensor and producing one score per class. The scores are turned into probabilities with a softmax. If the top probability is at least the configured ``presence_threshold`` the species is accepted, otherwise the classifier abstains and reports ``Unknown``. In both cases the top probability is kept as the confidence.

The network is loaded through an :class:`InferenceContext` which the caller constructs and passes in. This keeps engine configuration explicit and allows a fake engine to be substituted in tests.
"""
from pathlib import Path
from threading import Lock
from typing import Callable, Iterable, List, Optional, Tuple, Union

import cv2
import numpy as np

from FeederVision.classification.preprocess import load_rgb, preprocess
from FeederVision.errors import ClassifierSetupError, InferenceError
from FeederVision.logging import get_logger
from FeederVision.records import Classification, Decision, ImageInfo
from FeederVision.settings import ClassifierSettings

logger = get_logger(__name__)


ProgressCallback = Callable[[int, int], None]


class InferenceContext:
    """Loads networks for a particular OpenCV DNN backend and target"""

    def __init__(
        self,
        backend: int = cv2.dnn.DNN_BACKEND_OPENCV,
        target: int = cv2.dnn.DNN_TARGET_CPU,
    ):
        self.backend = backend
        self.target = target

    def load(self, model_path: Union[str, Path]):
        """Read a network from disk

        Args:
            model_path (Union[str, Path]): Model file, format inferred from the extension

        Raises:
            ClassifierSetupError: If OpenCV cannot read the model

        Returns:
            cv2.dnn.Net: The network, ready for ``setInput`` and ``forward``
        """
        try:
            net = cv2.dnn.readNet(str(model_path))
        except cv2.error as e:
            raise ClassifierSetupError(
                "Could not load model {}: {}".format(model_path, e)
            ) from e
        if net.empty():
            raise ClassifierSetupError("Model {} contains no layers".format(model_path))
        net.setPreferableBackend(self.backend)
        net.setPreferableTarget(self.target)
        return net


def load_labels(path: Union[str, Path]) -> Tuple[str, ...]:
    """Read one species name per line. Names are stripped, blank lines dropped and repeated names removed, keeping the first occurrence so that line order still gives the class index.

    Args:
        path (Union[str, Path]): Labels file

    Returns:
        Tuple[str, ...]: The label table
    """
    labels = []
    seen = set()
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            label = line.strip()
            if not label or label in seen:
                continue
            seen.add(label)
            labels.append(label)
    return tuple(labels)


def softmax(scores: Iterable[float]) -> np.ndarray:
    """Numerically stable softmax. The maximum is subtracted before exponentiating. If no probability mass is left (e.g. all scores are ``-inf``) an all-zero vector is returned.

    Args:
        scores (Iterable[float]): Raw network scores

    Returns:
        np.ndarray: Probabilities, float64
    """
    scores = np.asarray(scores, dtype=np.float64).reshape(-1)
    if scores.size == 0:
        return scores
    with np.errstate(invalid="ignore", over="ignore", under="ignore"):
        exps = np.exp(scores - scores.max())
    exps = np.where(np.isfinite(exps), exps, 0.0)
    total = exps.sum()
    if total == 0.0:
        return np.zeros_like(exps)
    return exps / total


def is_background(species: str, background_labels: Iterable[str]) -> bool:
    return species.casefold() in {label.casefold() for label in background_labels}


def decide(
    probabilities: np.ndarray,
    labels: Tuple[str, ...],
    threshold: float,
) -> Classification:
    """Pick the most likely class and apply the abstention threshold

    Args:
        probabilities (np.ndarray): Output of :func:`softmax`
        labels (Tuple[str, ...]): The label table
        threshold (float): Minimum top probability for a label to be accepted

    Raises:
        InferenceError: If the top class has no entry in the label table

    Returns:
        Classification: Labelled if the top probability is at least ``threshold``, otherwise ``Unknown``
    """
    index = int(np.argmax(probabilities))
    if index >= len(labels):
        raise InferenceError(
            "Class index {} is outside the {} known labels".format(index, len(labels))
        )
    confidence = float(probabilities[index])
    species = labels[index]
    if confidence >= threshold:
        decision = Decision.label(species)
    else:
        decision = Decision.unknown()
    return Classification(decision=decision, confidence=confidence, top_label=species)


def accepted(classification: Classification, background_labels: Iterable[str] = ()) -> bool:
    """Whether a classification means a subject is present: a species was accepted and it is not one of the background classes"""
    decision = classification.decision
    if decision.is_unknown:
        return False
    return not is_background(decision.species, background_labels)


def apply_threshold(
    rows: List[ImageInfo], threshold: float, background_labels: Iterable[str] = ()
):
    """Re-derive every classified record's decision and ``present`` flag for a new threshold, without running the network again. Records without a classification are left untouched.

    Args:
        rows (List[ImageInfo]): Previously classified records
        threshold (float): The new abstention threshold
        background_labels (Iterable[str], optional): Species names that mean "no subject". Defaults to none.
    """
    background_labels = tuple(background_labels)
    for info in rows:
        c = info.classification
        if c is None or c.top_label is None:
            continue
        if c.confidence >= threshold:
            decision = Decision.label(c.top_label)
        else:
            decision = Decision.unknown()
        info.classification = Classification(decision, c.confidence, c.top_label)
        info.present = accepted(info.classification, background_labels)


class SpeciesClassifier:
    """Species classification stage wrapping a loaded network and its label table"""

    def __init__(self, settings: ClassifierSettings, context: InferenceContext):
        """
        Args:
            settings (ClassifierSettings): Model location, label table and thresholds
            context (InferenceContext): Engine used to load the model

        Raises:
            ClassifierSetupError: If the model or labels file is missing, the labels file is empty, or the engine rejects the model
        """
        model_path = Path(settings.model_path)
        labels_path = Path(settings.labels_path)
        if not model_path.is_file():
            raise ClassifierSetupError("Model file not found: {}".format(model_path))
        if not labels_path.is_file():
            raise ClassifierSetupError("Labels file not found: {}".format(labels_path))

        try:
            self.labels = load_labels(labels_path)
        except (OSError, UnicodeDecodeError) as e:
            raise ClassifierSetupError(
                "Could not read labels {}: {}".format(labels_path, e)
            ) from e
        if not self.labels:
            raise ClassifierSetupError("No labels found in {}".format(labels_path))

        self.input_size = settings.input_size
        self.threshold = settings.presence_threshold
        self.mean = tuple(settings.mean)
        self.std = tuple(settings.std)
        self.background_labels = tuple(settings.background_labels)

        self._net = context.load(model_path)
        # One forward pass at a time per network
        self._net_lock = Lock()
        logger.debug(
            "Loaded {} with {} labels".format(model_path, len(self.labels))
        )

    def run_raw(self, path: Union[str, Path]) -> np.ndarray:
        """Run the network on one image and return the class probabilities

        Args:
            path (Union[str, Path]): The image

        Raises:
            InferenceError: If the network produced no output or no scores

        Returns:
            np.ndarray: Softmax probabilities, one per class
        """
        tensor = preprocess(load_rgb(path), self.input_size, self.mean, self.std)
        with self._net_lock:
            self._net.setInput(tensor)
            output = self._net.forward()

        if isinstance(output, (list, tuple)):
            if not output:
                raise InferenceError("Network returned no outputs")
            output = output[0]
        if output is None:
            raise InferenceError("Network returned no outputs")
        scores = np.asarray(output).reshape(-1)
        if scores.size == 0:
            raise InferenceError("Network returned an empty score vector")
        return softmax(scores)

    def classify(self, path: Union[str, Path]) -> Classification:
        """Classify one image, applying the abstention threshold. Errors are raised to the caller."""
        return decide(self.run_raw(path), self.labels, self.threshold)

    def is_present(self, classification: Classification) -> bool:
        return accepted(classification, self.background_labels)

    def classify_with_progress(
        self,
        rows: List[ImageInfo],
        progress: Optional[ProgressCallback] = None,
        should_stop: Optional[Callable[[], bool]] = None,
    ):
        """Classify each record in turn, updating it in place.

        ``present`` is set to whether a species was accepted. A record whose image cannot be classified is logged and reset to ``present=False`` with no classification, and the batch carries on.

        Args:
            rows (List[ImageInfo]): Records to classify, in output order
            progress (Optional[ProgressCallback], optional): Called with ``(completed, total)`` after every record. Defaults to None.
            should_stop (Optional[Callable[[], bool]], optional): Checked before every record, the batch ends early when it returns `True`. Defaults to None.
        """
        total = len(rows)
        for completed, info in enumerate(rows, start=1):
            if should_stop is not None and should_stop():
                logger.info(
                    "Classification stopped after {} of {} images".format(
                        completed - 1, total
                    )
                )
                return
            try:
                classification = self.classify(info.file)
            except Exception as e:
                logger.warning("Classification failed for {}: {}".format(info.file, e))
                info.reset()
            else:
                info.classification = classification
                info.present = self.is_present(classification)
            logger.debug("Classified {} of {}".format(completed, total))
            if progress is not None:
                progress(completed, total)
