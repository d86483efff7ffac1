"""Metric helpers for training and evaluation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Sequence

import numpy as np

from ..core.network import Network
from ..core.types import Array, Sample, as_sample


@dataclass(frozen=True)
class ClassStats:
    total: int
    correct: int

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"total": self.total, "correct": self.correct, "accuracy": self.accuracy}


@dataclass(frozen=True)
class EvaluationReport:
    """Aggregated classification results over a sample set."""

    total: int
    correct: int
    loss: float
    per_class: Mapping[int, ClassStats] = field(default_factory=dict)
    confusion: Array = field(default_factory=lambda: np.zeros((0, 0), dtype=np.int64))

    @property
    def accuracy(self) -> float:
        return self.correct / self.total if self.total else 0.0

    def to_dict(self) -> Dict[str, object]:
        return {
            "total": self.total,
            "correct": self.correct,
            "accuracy": self.accuracy,
            "loss": self.loss,
            "per_class": {str(label): stats.to_dict() for label, stats in self.per_class.items()},
            "confusion": self.confusion.tolist(),
        }


def mean_squared_error(predictions: Array, targets: Array) -> float:
    diff = np.asarray(predictions, dtype=np.float64) - np.asarray(targets, dtype=np.float64)
    return float(np.mean(np.square(diff))) if diff.size else 0.0


def labels(values: Array) -> Array:
    """Class index per row: argmax for vectors, a 0.5 threshold for scalars."""

    values = np.asarray(values, dtype=np.float64)
    if values.ndim == 1:
        values = values.reshape(-1, 1)
    if values.shape[1] == 1:
        return (values[:, 0] >= 0.5).astype(np.int64)
    return np.argmax(values, axis=1).astype(np.int64)


def accuracy(predictions: Array, targets: Array) -> float:
    pred_idx = labels(predictions)
    targ_idx = labels(targets)
    return float(np.mean(pred_idx == targ_idx)) if pred_idx.size else 0.0


def predict(network: Network, samples: Iterable[Sample]) -> tuple[Array, Array]:
    """Query ``network`` for every sample; returns ``(predictions, targets)``."""

    prepared = [as_sample(item) for item in samples]
    if not prepared:
        empty = np.zeros((0, network.output_size), dtype=np.float64)
        return empty, empty.copy()
    predictions = np.vstack([network.query(sample.inputs) for sample in prepared])
    targets = np.vstack([sample.targets for sample in prepared])
    return predictions, targets


def evaluate(
    network: Network,
    samples: Sequence[Sample],
    *,
    num_classes: int | None = None,
) -> EvaluationReport:
    predictions, targets = predict(network, samples)
    if num_classes is None:
        num_classes = 2 if network.output_size == 1 else network.output_size
    pred_idx = labels(predictions)
    targ_idx = labels(targets)

    confusion = np.zeros((num_classes, num_classes), dtype=np.int64)
    for actual, predicted in zip(targ_idx, pred_idx):
        confusion[actual, predicted] += 1

    per_class = {
        cls: ClassStats(total=int(confusion[cls].sum()), correct=int(confusion[cls, cls]))
        for cls in range(num_classes)
        if confusion[cls].sum()
    }
    return EvaluationReport(
        total=int(targ_idx.size),
        correct=int(np.sum(pred_idx == targ_idx)),
        loss=mean_squared_error(predictions, targets),
        per_class=per_class,
        confusion=confusion,
    )


def compute_metrics(
    names: Iterable[str], predictions: Array, targets: Array
) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        key = name.lower()
        if key in {"loss", "mse"}:
            results[key] = mean_squared_error(predictions, targets)
        elif key == "accuracy":
            results[key] = accuracy(predictions, targets)
        else:
            raise KeyError(f"Unknown metric: {name}")
    return results


__all__ = [
    "ClassStats",
    "EvaluationReport",
    "accuracy",
    "compute_metrics",
    "evaluate",
    "labels",
    "mean_squared_error",
    "predict",
]
