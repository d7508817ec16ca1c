"""Core typing contracts for the backprop playground."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Mapping, Tuple

import numpy as np

from .errors import InvalidConfigurationError

Array = np.ndarray

PARAMETER_NAMES: Tuple[str, ...] = ("weights1", "biases1", "weights2", "biases2")


class TaskType(str, Enum):
    """Learning task, fixing the output activation and the loss."""

    CLASSIFICATION = "classification"
    REGRESSION = "regression"

    @classmethod
    def parse(cls, value: "TaskType | str") -> "TaskType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value))
        except ValueError:
            choices = ", ".join(member.value for member in cls)
            raise InvalidConfigurationError(
                f"Unknown task type {value!r}. Expected one of: {choices}"
            ) from None


def _frozen_copy(value: Any) -> Array:
    arr = np.array(value, dtype=np.float64, copy=True)
    arr.setflags(write=False)
    return arr


def _to_list(value: Array) -> list:
    return np.asarray(value).tolist()


@dataclass(frozen=True)
class Parameters:
    """The four parameter tensors of the network.

    ``weights1`` is indexed ``[input][hidden]`` and ``weights2`` is indexed
    ``[hidden][output]``.
    """

    weights1: Array
    biases1: Array
    weights2: Array
    biases2: Array

    def copy(self) -> "Parameters":
        return Parameters(
            weights1=np.array(self.weights1, dtype=np.float64, copy=True),
            biases1=np.array(self.biases1, dtype=np.float64, copy=True),
            weights2=np.array(self.weights2, dtype=np.float64, copy=True),
            biases2=np.array(self.biases2, dtype=np.float64, copy=True),
        )

    def frozen(self) -> "Parameters":
        """Return a read-only deep copy."""

        return Parameters(**{name: _frozen_copy(getattr(self, name)) for name in PARAMETER_NAMES})

    def shapes(self) -> Dict[str, Tuple[int, ...]]:
        return {name: tuple(np.shape(getattr(self, name))) for name in PARAMETER_NAMES}

    def as_dict(self) -> Dict[str, list]:
        return {name: _to_list(getattr(self, name)) for name in PARAMETER_NAMES}

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> "Parameters":
        missing = [name for name in PARAMETER_NAMES if name not in mapping]
        if missing:
            raise KeyError(f"Missing parameter tensors: {', '.join(missing)}")
        return cls(**{name: mapping[name] for name in PARAMETER_NAMES})


@dataclass(frozen=True)
class Example:
    """A single labelled training example."""

    inputs: Array
    targets: Array
    label: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "inputs", _frozen_copy(self.inputs).reshape(-1))
        object.__setattr__(self, "targets", _frozen_copy(self.targets).reshape(-1))


@dataclass(frozen=True)
class ForwardPass:
    """Forward-pass intermediates and the parameters they were computed with."""

    inputs: Array
    hidden_pre: Array
    hidden_post: Array
    output_pre: Array
    output_post: Array
    weights1: Array
    weights2: Array
    biases1: Array
    biases2: Array

    @property
    def parameters(self) -> Parameters:
        return Parameters(
            weights1=self.weights1,
            biases1=self.biases1,
            weights2=self.weights2,
            biases2=self.biases2,
        )


@dataclass(frozen=True)
class BackwardPass:
    """Loss and every gradient computed during a training step."""

    loss: float
    output_gradients: Array
    hidden_gradients: Array
    weights2_gradients: Array
    weights1_gradients: Array
    biases2_gradients: Array
    biases1_gradients: Array

    def gradient_for(self, name: str) -> Array:
        """Return the gradient tensor for parameter ``name``."""

        if name not in PARAMETER_NAMES:
            raise KeyError(f"Unknown parameter tensor: {name}")
        return getattr(self, f"{name}_gradients")


@dataclass(frozen=True)
class TrainingStep:
    """Immutable snapshot of one training step.

    ``forward`` holds the parameters before the update, ``after`` the
    parameters once ``learning_rate * gradient`` has been subtracted.
    """

    forward: ForwardPass
    backward: BackwardPass
    after: Parameters

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        forward = {f.name: _to_list(getattr(self.forward, f.name)) for f in fields(self.forward)}
        backward: Dict[str, Any] = {"loss": float(self.backward.loss)}
        for f in fields(self.backward):
            if f.name != "loss":
                backward[f.name] = _to_list(getattr(self.backward, f.name))
        return {"forward": forward, "backward": backward, "after": self.after.as_dict()}


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`backprop_playground.training.pipelines.run_pipeline`."""

    steps: int
    metrics_path: str
    manifest_path: str
    summary_path: str = ""
    last_step_path: str = ""
    final_loss: float = float("nan")


@dataclass
class NetworkConfig:
    """Construction parameters of :class:`~backprop_playground.core.network.TwoLayerNetwork`."""

    input_size: int = 2
    hidden_size: int = 4
    output_size: int = 1
    learning_rate: float = 0.1
    task_type: TaskType = TaskType.CLASSIFICATION
    seed: int | None = None
    strict: bool = False

    def validate(self) -> "NetworkConfig":
        for name in ("input_size", "hidden_size", "output_size"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
                raise InvalidConfigurationError(f"{name} must be an integer, got {value!r}")
            if value <= 0:
                raise InvalidConfigurationError(f"{name} must be positive, got {value}")
            setattr(self, name, int(value))
        self.learning_rate = validate_learning_rate(self.learning_rate)
        self.task_type = TaskType.parse(self.task_type)
        return self


def validate_learning_rate(rate: Any) -> float:
    try:
        value = float(rate)
    except (TypeError, ValueError):
        raise InvalidConfigurationError(f"learning_rate must be a number, got {rate!r}") from None
    if not np.isfinite(value) or value <= 0:
        raise InvalidConfigurationError(f"learning_rate must be positive and finite, got {rate!r}")
    return value


__all__ = [
    "Array",
    "BackwardPass",
    "Example",
    "ForwardPass",
    "NetworkConfig",
    "PARAMETER_NAMES",
    "Parameters",
    "RunResult",
    "TaskType",
    "TrainingStep",
    "validate_learning_rate",
]
