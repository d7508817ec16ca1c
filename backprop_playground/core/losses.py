"""Loss registry pairing each task type with its output activation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable

import numpy as np

from .types import Array, TaskType

LossFn = Callable[[Array, Array], tuple[float, Array]]

EPSILON = 1e-12


@dataclass(frozen=True)
class Loss:
    """Loss wrapper returning both the scalar loss and dL/d(output_pre).

    ``fn`` receives the post-activation outputs, so the returned gradient
    already folds in the derivative of the matching output activation.
    """

    name: str
    fn: LossFn

    def __call__(self, outputs: Array, targets: Array) -> tuple[float, Array]:
        return self.fn(outputs, targets)


class LossRegistry:
    """Central registry for loss functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, Loss] = {}

    def register(self, name: str, fn: LossFn) -> None:
        self._registry[name] = Loss(name, fn)

    def get(self, name: str) -> Loss:
        try:
            return self._registry[name]
        except KeyError as exc:
            raise KeyError(f"Unknown loss: {name}") from exc

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, name: str, *, task_type: TaskType | str) -> Loss:
        if name == "auto":
            task = TaskType.parse(task_type)
            name = "bce" if task is TaskType.CLASSIFICATION else "half_mse"
        if name not in self._registry:
            available = ", ".join(sorted(self._registry))
            raise KeyError(f"Unknown loss {name!r}. Available losses: {available}")
        return self._registry[name]


REGISTRY = LossRegistry()


def clamp_probability(y: Array, eps: float = EPSILON) -> Array:
    """Restrict ``y`` to ``[eps, 1 - eps]`` so logarithms stay finite."""

    return np.clip(y, eps, 1.0 - eps)


def _bce(outputs: Array, targets: Array) -> tuple[float, Array]:
    y = clamp_probability(outputs)
    loss = float(-np.mean(targets * np.log(y) + (1.0 - targets) * np.log(1.0 - y)))
    # sigmoid + cross-entropy: the sigmoid derivative cancels out.
    grad = outputs - targets
    return loss, grad


def _half_mse(outputs: Array, targets: Array) -> tuple[float, Array]:
    diff = outputs - targets
    loss = float(np.mean(0.5 * np.square(targets - outputs)))
    return loss, diff


REGISTRY.register("bce", _bce)
REGISTRY.register("half_mse", _half_mse)


def loss_for(task_type: TaskType | str) -> Loss:
    """Return the loss paired with ``task_type``."""

    return REGISTRY.resolve("auto", task_type=task_type)


__all__ = ["EPSILON", "Loss", "LossRegistry", "REGISTRY", "clamp_probability", "loss_for"]
