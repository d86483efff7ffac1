"""digitnet: a small multilayer perceptron for handwritten digit recognition."""

from .core.activations import ActivationStrategy, Sigmoid
from .core.config import NetworkConfig
from .core.errors import (
    ConfigurationError,
    CorruptModelError,
    DigitNetError,
    DimensionError,
    NumericDegeneracyError,
    ShapeError,
)
from .core.network import Network
from .core.types import ModelState, Sample
from .persistence import deserialize, serialize
from .recognition import DigitRecognition, ManualResult

__version__ = "0.1.0"

__all__ = [
    "ActivationStrategy",
    "ConfigurationError",
    "CorruptModelError",
    "DigitNetError",
    "DigitRecognition",
    "DimensionError",
    "ManualResult",
    "ModelState",
    "Network",
    "NetworkConfig",
    "NumericDegeneracyError",
    "Sample",
    "ShapeError",
    "Sigmoid",
    "deserialize",
    "serialize",
]
