"""Single-hidden-layer perceptron trained by online backpropagation."""

from __future__ import annotations

import logging
import numbers
import time
import warnings
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, Iterable, Iterator, Mapping, Sequence

import numpy as np

from .activations import ActivationStrategy, Sigmoid
from .config import WEIGHT_RANGE, NetworkConfig
from .errors import ConfigurationError, NumericDegeneracyError, ShapeError
from .strategies import AdaptiveStep, GradientDescent, UpdateRule, apply_momentum
from .types import Array, ForwardResult, ModelState, Sample, UpdateState, as_sample

logger = logging.getLogger(__name__)

# Output layer is updated first; both deltas use pre-update weights.
LAYERS = ("ho", "ih")


def _generate_weights(rng: np.random.Generator, rows: int, columns: int) -> Array:
    return rng.uniform(-WEIGHT_RANGE, WEIGHT_RANGE, size=(rows, columns))


def _gradient(layer_inputs: Array, outputs: Array, errors: Array) -> Array:
    """Generalised delta rule for a sigmoid layer."""

    return (errors * outputs * (1.0 - outputs)) @ layer_inputs.T


class Network:
    """Multilayer perceptron with one hidden layer.

    Use :meth:`from_config`, :meth:`from_scalars` or
    :meth:`from_existing_state` to build instances.  A network owns its
    weight matrices exclusively; training and querying the same instance
    from several threads is not supported.
    """

    def __init__(self, config: NetworkConfig, *, rng: np.random.Generator | None = None) -> None:
        config.validate()
        if config.use_adaptive_step and (
            config.learning_rate is not None or config.momentum is not None
        ):
            warnings.warn(
                "learning_rate and momentum are ignored when use_adaptive_step is enabled",
                UserWarning,
                stacklevel=3,
            )
        self.config = config
        self.input_size = int(config.input_size)
        self.hidden_size = int(config.hidden_size)
        self.output_size = int(config.output_size)
        self.learning_rate = config.effective_learning_rate
        self.momentum = config.effective_momentum

        rng = rng if rng is not None else np.random.default_rng(config.seed)
        self._weights_ih = _generate_weights(rng, self.hidden_size, self.input_size)
        self._weights_ho = _generate_weights(rng, self.output_size, self.hidden_size)
        self._activation: ActivationStrategy = Sigmoid()
        self._training = False

        self._rule: UpdateRule
        if config.use_adaptive_step:
            self._rule = AdaptiveStep(
                initial_step=float(config.initial_step), bounds=config.step_bounds
            )
        else:
            self._rule = GradientDescent()
        self._rule_state = self._rule.init(self._shapes())
        self._previous_deltas: Dict[str, Array] | None = None

    # ------------------------------------------------------------------
    # Construction

    @classmethod
    def from_config(
        cls, config: NetworkConfig, *, rng: np.random.Generator | None = None
    ) -> "Network":
        return cls(config, rng=rng)

    @classmethod
    def from_scalars(
        cls,
        input_size: int,
        hidden_size: int,
        output_size: int,
        learning_rate: float | None = None,
        momentum: float | None = None,
        use_adaptive_step: bool = False,
        **options: Any,
    ) -> "Network":
        config = NetworkConfig(
            input_size=input_size,
            hidden_size=hidden_size,
            output_size=output_size,
            learning_rate=learning_rate,
            momentum=momentum,
            use_adaptive_step=use_adaptive_step,
            **options,
        )
        return cls(config)

    @classmethod
    def from_existing_state(cls, model: ModelState, **options: Any) -> "Network":
        """Build an inference-ready network around ``model``.

        Momentum, adaptive mode and auxiliary state take their defaults
        unless given in ``options``.
        """

        weights_ih = np.asarray(model.weights_ih, dtype=np.float64)
        weights_ho = np.asarray(model.weights_ho, dtype=np.float64)
        if weights_ih.ndim != 2 or weights_ho.ndim != 2:
            raise ShapeError("weight matrices must be two-dimensional")
        hidden_size, input_size = weights_ih.shape
        output_size = weights_ho.shape[0]
        config = NetworkConfig(
            input_size=int(input_size),
            hidden_size=int(hidden_size),
            output_size=int(output_size),
            learning_rate=float(model.learning_rate),
            **options,
        )
        network = cls(config)
        network.set_model(replace(model, weights_ih=weights_ih, weights_ho=weights_ho))
        return network

    # ------------------------------------------------------------------
    # Model state

    @property
    def weights_ih(self) -> Array:
        return self._weights_ih

    @property
    def weights_ho(self) -> Array:
        return self._weights_ho

    @property
    def activation(self) -> ActivationStrategy:
        return self._activation

    @activation.setter
    def activation(self, strategy: ActivationStrategy) -> None:
        if not isinstance(strategy, ActivationStrategy):
            raise TypeError(f"{strategy!r} does not implement ActivationStrategy")
        if self._training:
            raise RuntimeError("cannot swap the activation strategy during a training run")
        self._activation = strategy

    @property
    def adaptive_state(self) -> UpdateState | None:
        return self._rule_state if self.config.use_adaptive_step else None

    @property
    def previous_deltas(self) -> Mapping[str, Array] | None:
        if self._previous_deltas is None:
            return None
        return dict(self._previous_deltas)

    @property
    def is_training(self) -> bool:
        return self._training

    def get_model(self) -> ModelState:
        return ModelState(
            weights_ih=self._weights_ih.copy(),
            weights_ho=self._weights_ho.copy(),
            learning_rate=float(self.learning_rate),
            activation=self._activation,
        )

    def set_model(self, model: ModelState) -> None:
        """Replace weights, learning rate and activation in one go."""

        weights_ih = np.array(model.weights_ih, dtype=np.float64)
        weights_ho = np.array(model.weights_ho, dtype=np.float64)
        expected = self._shapes()
        if weights_ih.shape != expected["ih"]:
            raise ShapeError(
                f"input-hidden weights have shape {weights_ih.shape}, expected {expected['ih']}"
            )
        if weights_ho.shape != expected["ho"]:
            raise ShapeError(
                f"hidden-output weights have shape {weights_ho.shape}, expected {expected['ho']}"
            )
        if not (np.isfinite(weights_ih).all() and np.isfinite(weights_ho).all()):
            raise NumericDegeneracyError("model weights contain NaN or Inf")
        if self._training:
            raise RuntimeError("cannot replace the model during a training run")
        self.activation = model.activation
        self._weights_ih = weights_ih
        self._weights_ho = weights_ho
        self.learning_rate = float(model.learning_rate)

    # ------------------------------------------------------------------
    # Inference

    def query(self, inputs: Sequence[float] | Array) -> Array:
        """Return the output activations for ``inputs`` as a flat array."""

        column = self._column(inputs, self.input_size, "input")
        return self.forward(column).final_outputs.reshape(-1)

    def forward(self, inputs: Array) -> ForwardResult:
        """Propagate a column vector of inputs through both layers."""

        if inputs.shape != (self.input_size, 1):
            raise ShapeError(
                f"forward expects a ({self.input_size}, 1) column, got {inputs.shape}"
            )
        hidden_inputs = self._weights_ih @ inputs
        hidden_outputs = self._activation.execute(hidden_inputs)
        final_inputs = self._weights_ho @ hidden_outputs
        final_outputs = self._activation.execute(final_inputs)
        return ForwardResult(hidden_outputs=hidden_outputs, final_outputs=final_outputs)

    # ------------------------------------------------------------------
    # Training

    @contextmanager
    def training_run(self) -> Iterator["Network"]:
        """Mark a training run in progress for the duration of the block."""

        if self._training:
            raise RuntimeError("a training run is already in progress")
        self._training = True
        try:
            yield self
        finally:
            self._training = False

    def train(
        self,
        samples: Iterable[Sample | Mapping[str, Any]],
        epochs: int,
        activation: ActivationStrategy | None = None,
    ) -> None:
        """Run ``epochs`` passes of online training over ``samples``."""

        if isinstance(epochs, bool) or not isinstance(epochs, numbers.Integral) or epochs < 0:
            raise ConfigurationError(f"epochs must be a non-negative integer, got {epochs!r}")
        if activation is not None:
            self.activation = activation
        training_set = self.prepare(samples)

        with self.training_run():
            epoch = epochs
            while epoch > 0:
                started = time.perf_counter()
                for index in range(len(training_set) - 1, -1, -1):
                    self.train_step(training_set[index])
                logger.debug("Epoch %d finished in %.3fs", epoch, time.perf_counter() - started)
                epoch -= 1

    def prepare(self, samples: Iterable[Sample | Mapping[str, Any]]) -> list[Sample]:
        """Coerce ``samples`` and check their lengths against the network shape."""

        prepared = [as_sample(item) for item in samples]
        for index, sample in enumerate(prepared):
            if sample.inputs.size != self.input_size:
                raise ShapeError(
                    f"sample {index} has {sample.inputs.size} inputs, expected {self.input_size}"
                )
            if sample.targets.size != self.output_size:
                raise ShapeError(
                    f"sample {index} has {sample.targets.size} targets, expected {self.output_size}"
                )
        return prepared

    def train_step(self, sample: Sample | Mapping[str, Any]) -> float:
        """Forward and backward pass for one example; returns its squared error."""

        sample = as_sample(sample)
        inputs = self._column(sample.inputs, self.input_size, "input")
        targets = self._column(sample.targets, self.output_size, "target")
        result = self.forward(inputs)
        errors = self._backward(inputs, targets, result)
        return float(np.mean(np.square(errors)))

    def _backward(self, inputs: Array, targets: Array, result: ForwardResult) -> Array:
        output_errors = targets - result.final_outputs
        hidden_errors = self._weights_ho.T @ output_errors
        gradients = {
            "ho": _gradient(result.hidden_outputs, result.final_outputs, output_errors),
            "ih": _gradient(inputs, result.hidden_outputs, hidden_errors),
        }

        state = self._rule_state
        previous = self._previous_deltas or {}
        deltas: Dict[str, Array] = {}
        for layer in LAYERS:
            delta, state = self._rule.scale(
                layer, gradients[layer], state, learning_rate=self.learning_rate
            )
            deltas[layer] = apply_momentum(delta, previous.get(layer), self.momentum)

        weights_ho = self._weights_ho + deltas["ho"]
        weights_ih = self._weights_ih + deltas["ih"]
        if self.config.check_finite:
            for layer, weights in (("ho", weights_ho), ("ih", weights_ih)):
                if not np.isfinite(weights).all():
                    raise NumericDegeneracyError(
                        f"update produced non-finite weights in layer {layer!r}"
                    )

        self._weights_ho = weights_ho
        self._weights_ih = weights_ih
        self._rule_state = state
        self._previous_deltas = deltas
        return output_errors

    # ------------------------------------------------------------------
    # Helpers

    def _shapes(self) -> Dict[str, tuple[int, int]]:
        return {
            "ih": (self.hidden_size, self.input_size),
            "ho": (self.output_size, self.hidden_size),
        }

    @staticmethod
    def _column(values: Sequence[float] | Array, size: int, kind: str) -> Array:
        array = np.asarray(values, dtype=np.float64)
        if array.ndim > 1:
            raise ShapeError(f"{kind} must be a flat vector, got shape {array.shape}")
        array = array.reshape(-1)
        if array.size != size:
            raise ShapeError(f"{kind} vector has length {array.size}, expected {size}")
        return array.reshape(size, 1)

    def __repr__(self) -> str:
        mode = "adaptive" if self.config.use_adaptive_step else "sgd"
        return (
            f"Network({self.input_size}-{self.hidden_size}-{self.output_size}, "
            f"lr={self.learning_rate}, momentum={self.momentum}, mode={mode})"
        )


__all__ = ["LAYERS", "Network"]
