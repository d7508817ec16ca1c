"""Loss evaluation at hypothetical parameters.

Everything here takes parameters by value: the live network is never
mutated, so a landscape can be sampled while training continues.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np

from .losses import loss_for
from .network import forward
from .types import PARAMETER_NAMES, Array, Parameters, TaskType


@dataclass(frozen=True)
class LossLandscape:
    """Loss sampled along one parameter coordinate."""

    tensor: str
    index: Tuple[int, ...]
    center: float
    weight_values: Array
    losses: Array

    def points(self) -> list[tuple[float, float]]:
        return [(float(w), float(loss)) for w, loss in zip(self.weight_values, self.losses)]

    def argmin(self) -> float:
        """Return the sampled weight value with the lowest loss."""

        return float(self.weight_values[int(np.argmin(self.losses))])


def loss_at(
    parameters: Parameters,
    inputs: Array | Iterable[float],
    targets: Array | Iterable[float],
    task_type: TaskType | str,
) -> float:
    """Return the loss the network would report with ``parameters``."""

    outputs = forward(parameters, inputs, task_type).output_post
    t = np.asarray(targets, dtype=np.float64).reshape(-1)
    loss_value, _ = loss_for(task_type)(outputs, t)
    return loss_value


def as_index(index: int | Iterable[int]) -> Tuple[int, ...]:
    """Return ``index`` as a tuple; a bare integer addresses a vector entry."""

    if isinstance(index, (int, np.integer)):
        return (int(index),)
    return tuple(int(i) for i in index)


def _normalise_index(tensor: Array, index: int | Iterable[int]) -> Tuple[int, ...]:
    idx = as_index(index)
    if len(idx) != tensor.ndim:
        raise IndexError(f"Index {idx} does not address a scalar of shape {tensor.shape}")
    for axis, (i, size) in enumerate(zip(idx, tensor.shape)):
        if not 0 <= i < size:
            raise IndexError(f"Index {i} out of range for axis {axis} with size {size}")
    return idx


def loss_landscape(
    parameters: Parameters,
    inputs: Array | Iterable[float],
    targets: Array | Iterable[float],
    task_type: TaskType | str,
    *,
    tensor: str = "weights1",
    index: int | Tuple[int, ...] = (0, 0),
    span: float = 2.0,
    num_points: int = 50,
    center: float | None = None,
) -> LossLandscape:
    """Sweep one coordinate across ``[center - span, center + span)``.

    Samples sit at ``center - span + i * (2 * span / num_points)`` for
    ``i`` in ``range(num_points)``; ``center`` defaults to the current value
    of the coordinate.
    """

    if tensor not in PARAMETER_NAMES:
        raise KeyError(f"Unknown parameter tensor: {tensor}")
    if num_points <= 0:
        raise ValueError("num_points must be positive")
    scratch = parameters.copy()
    target = getattr(scratch, tensor)
    idx = _normalise_index(target, index)
    origin = float(target[idx]) if center is None else float(center)

    step = 2.0 * span / num_points
    weight_values = origin - span + np.arange(num_points, dtype=np.float64) * step
    losses = np.empty(num_points, dtype=np.float64)
    for i, value in enumerate(weight_values):
        target[idx] = value
        losses[i] = loss_at(scratch, inputs, targets, task_type)

    return LossLandscape(
        tensor=tensor,
        index=idx,
        center=origin,
        weight_values=weight_values,
        losses=losses,
    )


__all__ = ["LossLandscape", "as_index", "loss_at", "loss_landscape"]
