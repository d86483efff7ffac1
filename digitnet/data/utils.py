"""Utility helpers for dataset loaders."""

from __future__ import annotations

from typing import Dict, List, Sequence

import numpy as np

from ..core.types import Array, Sample


def one_hot(labels: Array, num_classes: int) -> Array:
    labels = np.asarray(labels, dtype=np.int64).reshape(-1)
    out = np.zeros((labels.size, num_classes), dtype=np.float64)
    out[np.arange(labels.size), labels] = 1.0
    return out


def scale_pixels(images: Array) -> Array:
    """Flatten images to rows and scale 8-bit intensities into ``[0, 1]``."""

    images = np.asarray(images, dtype=np.float64)
    flat = images.reshape(images.shape[0], -1)
    if flat.size and flat.max() > 1.0:
        flat = flat / 255.0
    return flat


def to_samples(features: Array, targets: Array) -> List[Sample]:
    if len(features) != len(targets):
        raise ValueError(
            f"features ({len(features)}) and targets ({len(targets)}) differ in length"
        )
    return [Sample(inputs=x, targets=y) for x, y in zip(features, targets)]


def take_per_class(samples: Sequence[Sample], count: int) -> List[Sample]:
    """Return up to ``count`` samples for every label, keeping dataset order."""

    seen: Dict[int, int] = {}
    chosen: List[Sample] = []
    for sample in samples:
        if sample.targets.size == 1:
            label = int(sample.targets[0] >= 0.5)
        else:
            label = int(np.argmax(sample.targets))
        if seen.get(label, 0) >= count:
            continue
        seen[label] = seen.get(label, 0) + 1
        chosen.append(sample)
    return chosen


__all__ = ["one_hot", "scale_pixels", "take_per_class", "to_samples"]
