"""Two-input logic gate truth tables."""

from __future__ import annotations

from pathlib import Path

import numpy as np

from .registry import DatasetSpec, register_dataset
from .utils import to_samples

_INPUTS = np.array([[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]])

GATES = {
    "and": np.array([0.0, 0.0, 0.0, 1.0]),
    "or": np.array([0.0, 1.0, 1.0, 1.0]),
    "xor": np.array([0.0, 1.0, 1.0, 0.0]),
}


def truth_table(gate: str) -> tuple[np.ndarray, np.ndarray]:
    try:
        outputs = GATES[gate.lower()]
    except KeyError as exc:
        raise KeyError(f"Unknown gate {gate!r}. Available gates: {', '.join(sorted(GATES))}") from exc
    return _INPUTS.copy(), outputs.reshape(-1, 1)


def _factory(
    gate: str = "and",
    *,
    offline: bool | None = None,
    cache_dir: str | Path | None = None,
    **_: object,
) -> DatasetSpec:
    inputs, targets = truth_table(gate)
    samples = to_samples(inputs, targets)
    return DatasetSpec(
        name="logic",
        train=samples,
        test=list(samples),
        input_size=2,
        output_size=1,
        num_classes=2,
        provenance={"type": "truth-table", "gate": gate.lower()},
    )


register_dataset("logic", _factory)
