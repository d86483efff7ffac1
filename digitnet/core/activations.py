"""Activation strategies for digitnet."""

from __future__ import annotations

from typing import Callable, Dict, Protocol, runtime_checkable

import numpy as np

from .types import Array

# exp overflows float64 beyond ~709; sigmoid is saturated long before that.
_EXP_LIMIT = 500.0


def sigmoid(x: Array) -> Array:
    """Return the logistic sigmoid of ``x``."""

    return 1.0 / (1.0 + np.exp(-np.clip(x, -_EXP_LIMIT, _EXP_LIMIT)))


@runtime_checkable
class ActivationStrategy(Protocol):
    """Element-wise nonlinearity applied to every layer."""

    def execute(self, x: Array) -> Array:
        """Return a new array of the same shape with ``f`` applied."""


class BasicActivation:
    """Base class wiring :meth:`execute` to a scalar-to-scalar ``activate``."""

    name = "basic"

    def activate(self, x: Array) -> Array:  # pragma: no cover - abstract
        raise NotImplementedError

    def execute(self, x: Array) -> Array:
        values = np.asarray(x, dtype=np.float64)
        return np.array(self.activate(values), dtype=np.float64, copy=True)

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Sigmoid(BasicActivation):
    """Logistic sigmoid ``1 / (1 + e^-x)``."""

    name = "sigmoid"

    def activate(self, x: Array) -> Array:
        return sigmoid(x)


_REGISTRY: Dict[str, Callable[[], ActivationStrategy]] = {"sigmoid": Sigmoid}


def get_activation(name: str) -> ActivationStrategy:
    """Instantiate the activation registered under ``name``."""

    try:
        return _REGISTRY[name.lower()]()
    except KeyError as exc:
        available = ", ".join(sorted(_REGISTRY))
        raise KeyError(f"Unknown activation {name!r}. Available activations: {available}") from exc


__all__ = ["ActivationStrategy", "BasicActivation", "Sigmoid", "get_activation", "sigmoid"]
