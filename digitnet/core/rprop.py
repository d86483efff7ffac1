"""Sign-based adaptive step sizes (resilient backpropagation variant).

For every connection the controller compares the sign of the current raw
gradient with the sign seen on the previous step:

* sign changed to ``+1``: step grows by :data:`STEP_INCREASE`;
* sign changed to ``-1``: step shrinks by :data:`STEP_DECREASE`;
* sign changed to ``0``: step collapses to ``0``;
* sign unchanged: the previous step is carried forward.

This is not textbook RProp.  A step that has collapsed to zero stays at zero
until the sign changes to a non-zero value, and even then it is multiplied
from zero.  Pass :class:`~digitnet.core.config.StepBounds` to clip steps
into a positive range.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

from .config import STEP_DECREASE, STEP_INCREASE, StepBounds
from .types import AdaptiveStepState, Array


def sign(x: Array) -> Array:
    """Return the sign of ``x`` as floats in ``{-1, 0, 1}``."""

    values = np.asarray(x, dtype=np.float64)
    out = np.zeros_like(values)
    out[values > 0.0] = 1.0
    out[values < 0.0] = -1.0
    return out


def adapt(
    gradient: Array,
    state: AdaptiveStepState,
    *,
    bounds: StepBounds | None = None,
) -> Tuple[Array, AdaptiveStepState]:
    """Return the step matrix for ``gradient`` and the state to persist."""

    if gradient.shape != state.steps.shape:
        raise ValueError(
            f"gradient shape {gradient.shape} does not match step state {state.steps.shape}"
        )
    current = sign(gradient)
    changed = current != state.signs
    adjusted = np.where(
        current > 0,
        state.steps * STEP_INCREASE,
        np.where(current < 0, state.steps * STEP_DECREASE, 0.0),
    )
    steps = np.where(changed, adjusted, state.steps)
    if bounds is not None:
        steps = np.clip(steps, bounds.minimum, bounds.maximum)
    new_state = AdaptiveStepState(signs=current, steps=steps, errors=np.abs(gradient))
    return steps, new_state


__all__ = ["adapt", "sign"]
