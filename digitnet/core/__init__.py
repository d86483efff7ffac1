"""Core numerical primitives for digitnet."""

from . import activations, config, errors, network, rprop, strategies, types

__all__ = ["activations", "config", "errors", "network", "rprop", "strategies", "types"]
