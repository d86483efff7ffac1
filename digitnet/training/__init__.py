"""Training loops, metrics and pipelines."""

from .metrics import EvaluationReport, evaluate
from .trainer import Trainer, TrainingResult

__all__ = ["EvaluationReport", "Trainer", "TrainingResult", "evaluate"]
