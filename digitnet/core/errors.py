"""Exception hierarchy for digitnet."""

from __future__ import annotations


class DigitNetError(Exception):
    """Base class for errors raised by digitnet."""


class ConfigurationError(DigitNetError, ValueError):
    """Raised when network parameters are missing or malformed."""


class ShapeError(DigitNetError, ValueError):
    """Raised when a vector or matrix does not match the network shape."""


class CorruptModelError(DigitNetError, ValueError):
    """Raised when a persisted model cannot be decoded."""


class DimensionError(ConfigurationError, ShapeError):
    """Raised when a configured layer width is not a positive size."""


class NumericDegeneracyError(DigitNetError, FloatingPointError):
    """Raised when an update would leave NaN or Inf in the weights."""


__all__ = [
    "ConfigurationError",
    "CorruptModelError",
    "DigitNetError",
    "DimensionError",
    "NumericDegeneracyError",
    "ShapeError",
]
