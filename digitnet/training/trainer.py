"""Observable online training loop for digitnet networks."""

from __future__ import annotations

import logging
import numbers
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Mapping, Sequence, Tuple

import numpy as np

from ..core.activations import ActivationStrategy
from ..core.errors import ConfigurationError
from ..core.network import Network
from ..core.types import Sample
from .metrics import compute_metrics, predict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainingResult:
    """Summary returned by :meth:`Trainer.run`."""

    epochs: int
    stopped: bool
    seconds: float
    history: List[Tuple[int, Mapping[str, float]]] = field(default_factory=list)

    @property
    def final_loss(self) -> float:
        if not self.history:
            return float("nan")
        return float(self.history[-1][1]["loss"])


class Trainer:
    """Drive epochs of one-example-at-a-time training with callbacks.

    Every sample is visited exactly once per epoch, in reverse index order
    or, with ``shuffle``, in a seeded random permutation.  ``should_stop`` is
    polled after each epoch; the epoch boundary is the only place a run can
    be cancelled.
    """

    def __init__(
        self,
        network: Network,
        callbacks: Sequence[object] | None = None,
        *,
        shuffle: bool = False,
        seed: int | None = None,
        should_stop: Callable[[], bool] | None = None,
        eval_samples: Sequence[Sample] | None = None,
        eval_metrics: Sequence[str] = ("loss", "accuracy"),
    ) -> None:
        self.network = network
        self.callbacks = list(callbacks or [])
        self.shuffle = shuffle
        self.should_stop = should_stop
        self.eval_samples = list(eval_samples) if eval_samples is not None else None
        self.eval_metrics = list(eval_metrics)
        self._rng = np.random.default_rng(seed)

    def run(
        self,
        samples: Iterable[Sample],
        epochs: int,
        *,
        activation: ActivationStrategy | None = None,
    ) -> TrainingResult:
        if isinstance(epochs, bool) or not isinstance(epochs, numbers.Integral) or epochs < 0:
            raise ConfigurationError(f"epochs must be a non-negative integer, got {epochs!r}")
        if activation is not None:
            self.network.activation = activation
        training_set = self.network.prepare(samples)
        eval_set = self.network.prepare(self.eval_samples) if self.eval_samples else None

        logger.info(
            "Training %r on %d samples for %d epochs", self.network, len(training_set), epochs
        )
        history: List[Tuple[int, Mapping[str, float]]] = []
        started = time.perf_counter()
        stopped = False
        completed = 0
        try:
            with self.network.training_run():
                for epoch in range(1, epochs + 1):
                    metrics = self._run_epoch(training_set)
                    completed = epoch
                    logger.debug(
                        "Epoch %d/%d loss=%.6f (%.3fs)",
                        epoch,
                        epochs,
                        metrics["loss"],
                        metrics["seconds"],
                    )
                    if eval_set:
                        predictions, targets = predict(self.network, eval_set)
                        scores = compute_metrics(self.eval_metrics, predictions, targets)
                        metrics.update({f"val_{name}": value for name, value in scores.items()})
                    history.append((epoch, metrics))
                    self._emit_epoch(epoch, metrics)
                    if self.should_stop is not None and self.should_stop():
                        stopped = epoch < epochs
                        if stopped:
                            logger.info("Training stopped after epoch %d of %d", epoch, epochs)
                        break
        finally:
            self._close_callbacks()

        elapsed = time.perf_counter() - started
        logger.info("Finished %d epochs in %.2fs", completed, elapsed)
        return TrainingResult(epochs=completed, stopped=stopped, seconds=elapsed, history=history)

    # ------------------------------------------------------------------
    # Internal helpers

    def _order(self, size: int) -> np.ndarray:
        if self.shuffle:
            return self._rng.permutation(size)
        return np.arange(size - 1, -1, -1)

    def _run_epoch(self, training_set: Sequence[Sample]) -> dict[str, float]:
        started = time.perf_counter()
        losses = [self.network.train_step(training_set[idx]) for idx in self._order(len(training_set))]
        return {
            "loss": float(np.mean(losses)) if losses else 0.0,
            "seconds": time.perf_counter() - started,
        }

    def _emit_epoch(self, epoch: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)

    def _close_callbacks(self) -> None:
        for callback in self.callbacks:
            close = getattr(callback, "close", None)
            if callable(close):
                close()


__all__ = ["Trainer", "TrainingResult"]
