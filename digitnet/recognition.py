"""Handwritten digit recognition built on :class:`~digitnet.core.network.Network`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence

import numpy as np

from .core.config import NetworkConfig
from .core.errors import ShapeError
from .core.network import Network
from .data.registry import DatasetSpec, get_dataset
from .data.utils import take_per_class
from .persistence import deserialize, serialize
from .training.metrics import EvaluationReport, evaluate
from .training.trainer import Trainer, TrainingResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ManualResult:
    """Outcome of recognising a single image."""

    digit: int
    confidence: float
    outputs: np.ndarray
    expected: int | None = None

    @property
    def correct(self) -> bool | None:
        if self.expected is None:
            return None
        return self.digit == self.expected


class DigitRecognition:
    """Train, test and query a digit classifier over 28x28 images."""

    INPUT = 784
    OUTPUT = 10
    TRAIN_SET_SIZE = 1000

    def __init__(
        self,
        hidden_size: int,
        learning_rate: float | None = None,
        *,
        momentum: float | None = None,
        use_adaptive_step: bool = False,
        train_set_size: int = TRAIN_SET_SIZE,
        dataset_options: Mapping[str, Any] | None = None,
        seed: int | None = None,
    ) -> None:
        config = NetworkConfig(
            input_size=self.INPUT,
            hidden_size=hidden_size,
            output_size=self.OUTPUT,
            learning_rate=learning_rate,
            momentum=momentum,
            use_adaptive_step=use_adaptive_step,
            seed=seed,
        )
        self._setup(Network.from_config(config), train_set_size, dataset_options, seed)

    def _setup(
        self,
        network: Network,
        train_set_size: int,
        dataset_options: Mapping[str, Any] | None,
        seed: int | None,
    ) -> None:
        self.network = network
        self.train_set_size = train_set_size
        self.dataset_options = dict(dataset_options or {})
        self.seed = seed
        self._dataset: DatasetSpec | None = None

    @classmethod
    def from_network(
        cls,
        network: Network,
        *,
        dataset_options: Mapping[str, Any] | None = None,
        train_set_size: int = TRAIN_SET_SIZE,
    ) -> "DigitRecognition":
        if network.input_size != cls.INPUT or network.output_size != cls.OUTPUT:
            raise ShapeError(
                f"digit recognition needs a {cls.INPUT}-?-{cls.OUTPUT} network, got {network!r}"
            )
        instance = cls.__new__(cls)
        instance._setup(network, train_set_size, dataset_options, None)
        return instance

    @classmethod
    def load(cls, path: str | Path, **kwargs: Any) -> "DigitRecognition":
        return cls.from_network(deserialize(path), **kwargs)

    def save(self, path: str | Path) -> Path:
        return serialize(self.network, path)

    @property
    def dataset(self) -> DatasetSpec:
        if self._dataset is None:
            options = {"max_items": self.train_set_size}
            options.update(self.dataset_options)
            self._dataset = get_dataset("mnist", **options)
        return self._dataset

    def train(
        self, epochs: int, callbacks: Sequence[object] | None = None, shuffle: bool = False
    ) -> TrainingResult:
        """Train on the first ``train_set_size`` digits of the corpus."""

        trainer = Trainer(self.network, callbacks=callbacks, shuffle=shuffle, seed=self.seed)
        return trainer.run(self.dataset.train, epochs)

    def auto_test(self, each_digit_count: int = 50) -> EvaluationReport:
        """Evaluate up to ``each_digit_count`` test images of every digit."""

        samples = take_per_class(self.dataset.test, each_digit_count)
        report = evaluate(self.network, samples, num_classes=self.OUTPUT)
        logger.info(
            "Auto test: %d/%d recognised (%.1f%%)",
            report.correct,
            report.total,
            100.0 * report.accuracy,
        )
        return report

    def manual_test(self, image: Any, expected: int | None = None) -> ManualResult:
        """Recognise one image given as 784 values or a 28x28 array.

        Pixel values in ``[0, 255]`` are scaled to ``[0, 1]``.
        """

        pixels = np.asarray(image, dtype=np.float64).reshape(-1)
        if pixels.size != self.INPUT:
            raise ShapeError(f"image has {pixels.size} pixels, expected {self.INPUT}")
        if pixels.size and pixels.max() > 1.0:
            pixels = pixels / 255.0
        outputs = self.network.query(pixels)
        digit = int(np.argmax(outputs))
        total = float(np.sum(outputs))
        confidence = float(outputs[digit] / total) if total > 0 else 0.0
        return ManualResult(digit=digit, confidence=confidence, outputs=outputs, expected=expected)


__all__ = ["DigitRecognition", "ManualResult"]
