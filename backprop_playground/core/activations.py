"""Activation utilities for the two-layer network."""

from __future__ import annotations

import numpy as np

from .types import Array


def sigmoid(x: Array) -> Array:
    """Return the logistic sigmoid ``1 / (1 + exp(-x))``."""

    x = np.asarray(x, dtype=np.float64)
    out = np.empty_like(x)
    pos = x >= 0
    out[pos] = 1.0 / (1.0 + np.exp(-x[pos]))
    # exp(x) / (1 + exp(x)) avoids overflow in exp(-x) for large negative x.
    exp_x = np.exp(x[~pos])
    out[~pos] = exp_x / (1.0 + exp_x)
    return out


def sigmoid_derivative(x: Array) -> Array:
    """Return ``sigmoid(x) * (1 - sigmoid(x))``."""

    s = sigmoid(x)
    return s * (1.0 - s)


def identity(x: Array) -> Array:
    return np.array(x, dtype=np.float64, copy=True)


__all__ = ["identity", "sigmoid", "sigmoid_derivative"]
