"""Core numerical primitives for the backprop playground."""

from . import activations, errors, landscape, losses, network, types

__all__ = ["activations", "errors", "landscape", "losses", "network", "types"]
