"""Core typing contracts for digitnet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Mapping, Tuple

import numpy as np

if TYPE_CHECKING:  # pragma: no cover
    from .activations import ActivationStrategy

Array = np.ndarray


@dataclass(frozen=True)
class Sample:
    """A single labelled example."""

    inputs: Array
    targets: Array

    def __post_init__(self) -> None:
        object.__setattr__(self, "inputs", np.asarray(self.inputs, dtype=np.float64).reshape(-1))
        object.__setattr__(self, "targets", np.asarray(self.targets, dtype=np.float64).reshape(-1))


def as_sample(item: Any) -> Sample:
    """Coerce ``item`` into a :class:`Sample`.

    Accepts a :class:`Sample`, a mapping with ``inputs``/``targets`` keys or
    an ``(inputs, targets)`` pair.
    """

    if isinstance(item, Sample):
        return item
    if isinstance(item, Mapping):
        try:
            return Sample(inputs=item["inputs"], targets=item["targets"])
        except KeyError as exc:
            raise TypeError(f"Sample mapping is missing {exc.args[0]!r}") from exc
    if isinstance(item, tuple) and len(item) == 2:
        return Sample(inputs=item[0], targets=item[1])
    raise TypeError(f"Cannot interpret {type(item).__name__} as a sample")


@dataclass(frozen=True)
class ForwardResult:
    """Layer outputs captured during a forward pass (column vectors)."""

    hidden_outputs: Array
    final_outputs: Array


@dataclass(frozen=True)
class ModelState:
    """Complete replaceable state of a trained network."""

    weights_ih: Array
    weights_ho: Array
    learning_rate: float
    activation: "ActivationStrategy"

    @property
    def sizes(self) -> Tuple[int, int, int]:
        hidden_size, input_size = self.weights_ih.shape
        output_size = self.weights_ho.shape[0]
        return int(input_size), int(hidden_size), int(output_size)


@dataclass(frozen=True)
class AdaptiveStepState:
    """Per-connection bookkeeping of the adaptive step controller."""

    signs: Array
    steps: Array
    errors: Array

    @classmethod
    def initial(cls, shape: Tuple[int, int], initial_step: float) -> "AdaptiveStepState":
        return cls(
            signs=np.zeros(shape, dtype=np.float64),
            steps=np.full(shape, float(initial_step), dtype=np.float64),
            errors=np.ones(shape, dtype=np.float64),
        )


@dataclass(frozen=True)
class UpdateState:
    """State carried by an update rule between training steps."""

    layers: Dict[str, AdaptiveStepState] = field(default_factory=dict)

    def replace(self, layer: str, state: AdaptiveStepState) -> "UpdateState":
        layers = dict(self.layers)
        layers[layer] = state
        return UpdateState(layers=layers)


__all__ = [
    "AdaptiveStepState",
    "Array",
    "ForwardResult",
    "ModelState",
    "Sample",
    "UpdateState",
    "as_sample",
]
