"""Network configuration and numeric constants."""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass

from .errors import ConfigurationError, DimensionError

DEFAULT_LEARNING_RATE = 0.3
DEFAULT_MOMENTUM = 0.0

# Adaptive mode manages its own step sizes; these replace the scalars.
ADAPTIVE_LEARNING_RATE = 0.5
ADAPTIVE_MOMENTUM = 1.0

INITIAL_STEP = 0.5
STEP_INCREASE = 1.2
STEP_DECREASE = 0.5
MIN_STEP = 1e-6
MAX_STEP = 50.0

WEIGHT_RANGE = 0.5


@dataclass(frozen=True)
class StepBounds:
    """Inclusive clamp applied to adaptive step sizes."""

    minimum: float = MIN_STEP
    maximum: float = MAX_STEP


def _is_size(value: object) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _is_real(value: object) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


@dataclass(frozen=True)
class NetworkConfig:
    """Shape and training hyper-parameters of a single-hidden-layer network.

    Attributes
    ----------
    input_size, hidden_size, output_size:
        Layer widths; each must be an integer ``>= 1``.
    learning_rate, momentum:
        Plain gradient-descent scalars.  ``None`` resolves to the defaults
        (``0.3`` and ``0``).  Ignored when ``use_adaptive_step`` is set.
    use_adaptive_step:
        Enable the sign-based per-weight step controller.
    clamp_steps:
        Clip adaptive step sizes to ``[min_step, max_step]``.
    check_finite:
        Verify every weight update is finite before committing it.
    seed:
        Seed for weight initialisation.
    """

    input_size: int
    hidden_size: int
    output_size: int
    learning_rate: float | None = None
    momentum: float | None = None
    use_adaptive_step: bool = False
    clamp_steps: bool = False
    min_step: float = MIN_STEP
    max_step: float = MAX_STEP
    initial_step: float = INITIAL_STEP
    check_finite: bool = True
    seed: int | None = None

    def validate(self) -> None:
        for name in ("input_size", "hidden_size", "output_size"):
            value = getattr(self, name)
            if not _is_size(value):
                raise ConfigurationError(f"{name} must be an integer, got {value!r}")
            if value < 1:
                raise DimensionError(f"{name} must be >= 1, got {value}")
        for name in ("learning_rate", "momentum"):
            value = getattr(self, name)
            if value is not None and not _is_real(value):
                raise ConfigurationError(f"{name} must be a number, got {value!r}")
        for name in ("min_step", "max_step", "initial_step"):
            value = getattr(self, name)
            if not _is_real(value) or not math.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive finite number, got {value!r}")
        if self.min_step > self.max_step:
            raise ConfigurationError(
                f"min_step ({self.min_step}) must not exceed max_step ({self.max_step})"
            )
        if self.seed is not None and not _is_size(self.seed):
            raise ConfigurationError(f"seed must be an integer, got {self.seed!r}")

    @property
    def effective_learning_rate(self) -> float:
        if self.use_adaptive_step:
            return ADAPTIVE_LEARNING_RATE
        if self.learning_rate is None:
            return DEFAULT_LEARNING_RATE
        return float(self.learning_rate)

    @property
    def effective_momentum(self) -> float:
        if self.use_adaptive_step:
            return ADAPTIVE_MOMENTUM
        if self.momentum is None:
            return DEFAULT_MOMENTUM
        return float(self.momentum)

    @property
    def step_bounds(self) -> StepBounds | None:
        if not self.clamp_steps:
            return None
        return StepBounds(minimum=float(self.min_step), maximum=float(self.max_step))


__all__ = [
    "ADAPTIVE_LEARNING_RATE",
    "ADAPTIVE_MOMENTUM",
    "DEFAULT_LEARNING_RATE",
    "DEFAULT_MOMENTUM",
    "INITIAL_STEP",
    "MAX_STEP",
    "MIN_STEP",
    "NetworkConfig",
    "STEP_DECREASE",
    "STEP_INCREASE",
    "StepBounds",
    "WEIGHT_RANGE",
]
