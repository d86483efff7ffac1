"""Weight-update disciplines for digitnet."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Protocol, Tuple

from . import rprop
from .config import INITIAL_STEP, StepBounds
from .types import AdaptiveStepState, Array, UpdateState


class UpdateRule(Protocol):
    """Protocol implemented by weight-update disciplines."""

    def init(self, shapes: Mapping[str, Tuple[int, int]]) -> UpdateState:
        """Initialise auxiliary state for the named weight matrices."""

    def scale(
        self,
        layer: str,
        gradient: Array,
        state: UpdateState,
        *,
        learning_rate: float,
    ) -> tuple[Array, UpdateState]:
        """Return the weight delta for ``layer`` and the (possibly updated) state."""


@dataclass
class GradientDescent:
    """Classical gradient step scaled by the scalar learning rate."""

    def init(self, shapes: Mapping[str, Tuple[int, int]]) -> UpdateState:
        return UpdateState()

    def scale(
        self,
        layer: str,
        gradient: Array,
        state: UpdateState,
        *,
        learning_rate: float,
    ) -> tuple[Array, UpdateState]:
        return gradient * learning_rate, state


@dataclass
class AdaptiveStep:
    """Per-weight step sizes driven by gradient sign agreement."""

    initial_step: float = INITIAL_STEP
    bounds: StepBounds | None = None

    def init(self, shapes: Mapping[str, Tuple[int, int]]) -> UpdateState:
        return UpdateState(
            layers={
                name: AdaptiveStepState.initial(shape, self.initial_step)
                for name, shape in shapes.items()
            }
        )

    def scale(
        self,
        layer: str,
        gradient: Array,
        state: UpdateState,
        *,
        learning_rate: float,
    ) -> tuple[Array, UpdateState]:
        try:
            previous = state.layers[layer]
        except KeyError as exc:
            raise KeyError(f"No adaptive step state for layer {layer!r}") from exc
        steps, updated = rprop.adapt(gradient, previous, bounds=self.bounds)
        return gradient * steps, state.replace(layer, updated)


def apply_momentum(delta: Array, previous: Array | None, momentum: float) -> Array:
    """Add ``momentum`` times the previous delta when one exists."""

    if momentum == 0 or previous is None:
        return delta
    return delta + previous * momentum


__all__ = ["AdaptiveStep", "GradientDescent", "UpdateRule", "apply_momentum"]
