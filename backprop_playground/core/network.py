"""Two-layer network engine with full step introspection."""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field, replace
from numbers import Real
from typing import Any, Iterable, Mapping, Tuple

import numpy as np

from .activations import identity, sigmoid, sigmoid_derivative
from .errors import DimensionMismatchError, DimensionMismatchWarning
from .losses import loss_for
from .types import (
    PARAMETER_NAMES,
    Array,
    BackwardPass,
    Example,
    ForwardPass,
    NetworkConfig,
    Parameters,
    TaskType,
    TrainingStep,
    validate_learning_rate,
)

INIT_SCALE = 0.5


def _freeze(arr: Array) -> Array:
    out = np.array(arr, dtype=np.float64, copy=True)
    out.setflags(write=False)
    return out


def _mismatch(message: str, strict: bool, stacklevel: int) -> None:
    if strict:
        raise DimensionMismatchError(message)
    warnings.warn(
        f"{message}; missing entries were zero-filled and surplus entries dropped",
        DimensionMismatchWarning,
        stacklevel=stacklevel + 1,
    )


def _is_scalar(value: Any) -> bool:
    if isinstance(value, (np.ndarray, np.generic)):
        return value.ndim == 0 and value.dtype.kind in "biuf"
    return isinstance(value, Real)


def _is_sequence(values: Any) -> bool:
    if isinstance(values, np.ndarray):
        return values.ndim > 0
    return hasattr(values, "__len__") and not isinstance(values, (str, bytes))


def _entry(item: Any) -> Tuple[float, bool]:
    """Convert one entry; anything but a real scalar counts as missing."""

    if _is_scalar(item):
        return float(item), True
    return 0.0, False


def _fill(values: Any, length: int) -> Tuple[Array, bool]:
    out = np.zeros(length, dtype=np.float64)
    if not _is_sequence(values):
        return out, False
    if isinstance(values, np.ndarray) and values.ndim == 1 and values.dtype.kind in "biuf":
        entries = values.astype(np.float64)
        complete = True
    else:
        converted = [_entry(item) for item in values]
        entries = np.array([value for value, _ in converted], dtype=np.float64)
        complete = all(ok for _, ok in converted)
    n = min(length, entries.size)
    out[:n] = entries[:n]
    return out, complete and entries.size == length


def conform_vector(
    values: Any, length: int, *, name: str, strict: bool = False, stacklevel: int = 2
) -> Array:
    """Return a fresh float64 vector of ``length`` built from ``values``.

    A bare scalar is read as a one-entry vector. Mismatches raise
    :class:`DimensionMismatchError` when ``strict`` and are otherwise
    zero-filled/truncated with a :class:`DimensionMismatchWarning` attributed
    ``stacklevel`` frames up, as for :func:`warnings.warn`.
    """

    if _is_scalar(values):
        values = np.atleast_1d(np.asarray(values, dtype=np.float64))
    out, ok = _fill(values, length)
    if not ok:
        got = len(values) if _is_sequence(values) else "none"
        _mismatch(f"{name} expected {length} entries, got {got}", strict, stacklevel)
    return out


def conform_matrix(
    values: Any,
    shape: Tuple[int, int],
    *,
    name: str,
    strict: bool = False,
    stacklevel: int = 2,
) -> Array:
    """Matrix counterpart of :func:`conform_vector`; ragged rows are allowed."""

    rows, cols = shape
    if isinstance(values, np.ndarray) and values.shape == shape and values.dtype.kind in "biuf":
        return values.astype(np.float64, copy=True)
    out = np.zeros(shape, dtype=np.float64)
    source = list(values) if _is_sequence(values) else []
    ok = len(source) == rows
    for idx, row in enumerate(source[:rows]):
        out[idx], row_ok = _fill(row, cols)
        ok = ok and row_ok
    if not ok:
        _mismatch(f"{name} expected shape {shape}, got malformed rows", strict, stacklevel)
    return out


def _propagate(
    params: Parameters, inputs: Array, task_type: TaskType
) -> Tuple[Array, Array, Array, Array]:
    hidden_pre = inputs @ params.weights1 + params.biases1
    hidden_post = sigmoid(hidden_pre)
    output_pre = hidden_post @ params.weights2 + params.biases2
    if task_type is TaskType.CLASSIFICATION:
        output_post = sigmoid(output_pre)
    else:
        output_post = identity(output_pre)
    return hidden_pre, hidden_post, output_pre, output_post


def forward(
    parameters: Parameters, inputs: Array | Iterable[float], task_type: TaskType | str
) -> ForwardPass:
    """Run a forward pass with ``parameters`` without touching any network.

    Shapes must already agree; the returned record holds private copies.
    """

    x = np.asarray(inputs, dtype=np.float64).reshape(-1)
    hidden_pre, hidden_post, output_pre, output_post = _propagate(
        parameters, x, TaskType.parse(task_type)
    )
    return ForwardPass(
        inputs=_freeze(x),
        hidden_pre=_freeze(hidden_pre),
        hidden_post=_freeze(hidden_post),
        output_pre=_freeze(output_pre),
        output_post=_freeze(output_post),
        weights1=_freeze(parameters.weights1),
        weights2=_freeze(parameters.weights2),
        biases1=_freeze(parameters.biases1),
        biases2=_freeze(parameters.biases2),
    )


@dataclass(eq=False)
class TwoLayerNetwork:
    """Single hidden layer network trained one example at a time.

    The hidden layer always uses a sigmoid. Classification networks use a
    sigmoid output with binary cross-entropy, regression networks a linear
    output with half squared error. Parameters are owned by the network and
    only ever leave it as copies.
    """

    input_size: int = 2
    hidden_size: int = 4
    output_size: int = 1
    learning_rate: float = 0.1
    task_type: TaskType = TaskType.CLASSIFICATION
    seed: int | None = None
    strict: bool = False
    step_count: int = field(init=False, default=0)
    _parameters: Parameters = field(init=False, repr=False)
    _rng: np.random.Generator = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._apply_config(self.describe().validate())
        self._rng = np.random.default_rng(self.seed)
        self._initialise()

    # ------------------------------------------------------------------
    # Configuration

    def describe(self) -> NetworkConfig:
        return NetworkConfig(
            input_size=self.input_size,
            hidden_size=self.hidden_size,
            output_size=self.output_size,
            learning_rate=self.learning_rate,
            task_type=self.task_type,
            seed=self.seed,
            strict=self.strict,
        )

    config = property(describe)

    def _apply_config(self, config: NetworkConfig) -> None:
        self.input_size = config.input_size
        self.hidden_size = config.hidden_size
        self.output_size = config.output_size
        self.learning_rate = config.learning_rate
        self.task_type = config.task_type
        self.seed = config.seed
        self.strict = config.strict

    def reset(self, seed: int | None = None) -> None:
        """Redraw every parameter and zero the step counter."""

        if seed is not None:
            self.seed = seed
            self._rng = np.random.default_rng(seed)
        self._initialise()

    def reconfigure(
        self,
        *,
        input_size: int | None = None,
        hidden_size: int | None = None,
        output_size: int | None = None,
        learning_rate: float | None = None,
        task_type: TaskType | str | None = None,
    ) -> bool:
        """Apply new settings and reinitialise everything.

        Returns ``False`` (and leaves the network untouched) when nothing
        changed.
        """

        changes = {
            "input_size": input_size,
            "hidden_size": hidden_size,
            "output_size": output_size,
            "learning_rate": learning_rate,
            "task_type": task_type,
        }
        current = self.describe()
        candidate = replace(
            current, **{key: value for key, value in changes.items() if value is not None}
        ).validate()
        if candidate == current:
            return False
        self._apply_config(candidate)
        self._initialise()
        return True

    def set_learning_rate(self, rate: float) -> None:
        """Change the step size for subsequent steps only."""

        self.learning_rate = validate_learning_rate(rate)

    def get_task_type(self) -> TaskType:
        return self.task_type

    def parameter_count(self) -> int:
        return int(sum(int(np.size(getattr(self._parameters, name))) for name in PARAMETER_NAMES))

    # ------------------------------------------------------------------
    # Parameters

    def _random_tensor(self, shape: Tuple[int, ...]) -> Array:
        return (self._rng.random(shape) - 0.5) * INIT_SCALE

    def _initialise(self) -> None:
        weights1 = self._random_tensor((self.input_size, self.hidden_size))
        weights2 = self._random_tensor((self.hidden_size, self.output_size))
        biases1 = self._random_tensor((self.hidden_size,))
        biases2 = self._random_tensor((self.output_size,))
        self._parameters = Parameters(
            weights1=weights1, biases1=biases1, weights2=weights2, biases2=biases2
        )
        self.step_count = 0

    def _shapes(self) -> Mapping[str, Tuple[int, ...]]:
        return {
            "weights1": (self.input_size, self.hidden_size),
            "biases1": (self.hidden_size,),
            "weights2": (self.hidden_size, self.output_size),
            "biases2": (self.output_size,),
        }

    def get_weights(self) -> Parameters:
        """Return a deep copy of the current parameters."""

        return self._parameters.copy()

    def set_weights(self, parameters: Parameters | Mapping[str, Any]) -> None:
        """Install a deep copy of ``parameters``."""

        if not isinstance(parameters, Parameters):
            parameters = Parameters.from_mapping(parameters)
        shapes = self._shapes()
        installed = {}
        for name in PARAMETER_NAMES:
            value = getattr(parameters, name)
            conform = conform_matrix if len(shapes[name]) == 2 else conform_vector
            size = shapes[name] if len(shapes[name]) == 2 else shapes[name][0]
            installed[name] = conform(value, size, name=name, strict=self.strict, stacklevel=3)
        self._parameters = Parameters(**installed)

    # ------------------------------------------------------------------
    # Inference and training

    def _inputs(self, inputs: Any, stacklevel: int) -> Array:
        # stacklevel counts from this frame, as for warnings.warn
        return conform_vector(
            inputs, self.input_size, name="inputs", strict=self.strict, stacklevel=stacklevel + 1
        )

    def _targets(self, targets: Any, stacklevel: int) -> Array:
        return conform_vector(
            targets, self.output_size, name="targets", strict=self.strict, stacklevel=stacklevel + 1
        )

    def _loss(self, inputs: Any, targets: Any, stacklevel: int) -> float:
        x = self._inputs(inputs, stacklevel + 1)
        t = self._targets(targets, stacklevel + 1)
        _, _, _, output_post = _propagate(self._parameters, x, self.task_type)
        loss_value, _ = loss_for(self.task_type)(output_post, t)
        return loss_value

    def predict(self, inputs: Array | Iterable[float]) -> Array:
        """Return the network output for ``inputs``."""

        x = self._inputs(inputs, 3)
        _, _, _, output_post = _propagate(self._parameters, x, self.task_type)
        return output_post

    def evaluate(self, inputs: Array | Iterable[float], targets: Array | Iterable[float]) -> float:
        """Return the loss for one example without updating."""

        return self._loss(inputs, targets, 3)

    def evaluate_dataset(self, examples: Iterable[Example]) -> float:
        losses = []
        for example in examples:
            losses.append(self._loss(example.inputs, example.targets, 3))
        return float(np.mean(losses)) if losses else 0.0

    def train_step(
        self, inputs: Array | Iterable[float], targets: Array | Iterable[float]
    ) -> TrainingStep:
        """Run forward, backward and one gradient-descent update.

        Gradients are computed from the parameters as they were before the
        update; the returned record carries both snapshots.
        """

        x = self._inputs(inputs, 3)
        t = self._targets(targets, 3)
        before = self._parameters.frozen()

        hidden_pre, hidden_post, output_pre, output_post = _propagate(before, x, self.task_type)
        loss_value, output_gradients = loss_for(self.task_type)(output_post, t)

        hidden_error = before.weights2 @ output_gradients
        hidden_gradients = hidden_error * sigmoid_derivative(hidden_pre)
        grads = {
            "weights2": np.outer(hidden_post, output_gradients),
            "weights1": np.outer(x, hidden_gradients),
            "biases2": output_gradients.copy(),
            "biases1": hidden_gradients.copy(),
        }

        for name in PARAMETER_NAMES:
            param = getattr(self._parameters, name)
            param -= self.learning_rate * grads[name]
        self.step_count += 1

        forward_pass = ForwardPass(
            inputs=_freeze(x),
            hidden_pre=_freeze(hidden_pre),
            hidden_post=_freeze(hidden_post),
            output_pre=_freeze(output_pre),
            output_post=_freeze(output_post),
            weights1=before.weights1,
            weights2=before.weights2,
            biases1=before.biases1,
            biases2=before.biases2,
        )
        backward_pass = BackwardPass(
            loss=float(loss_value),
            output_gradients=_freeze(output_gradients),
            hidden_gradients=_freeze(hidden_gradients),
            weights2_gradients=_freeze(grads["weights2"]),
            weights1_gradients=_freeze(grads["weights1"]),
            biases2_gradients=_freeze(grads["biases2"]),
            biases1_gradients=_freeze(grads["biases1"]),
        )
        return TrainingStep(
            forward=forward_pass, backward=backward_pass, after=self._parameters.frozen()
        )


__all__ = ["INIT_SCALE", "TwoLayerNetwork", "conform_matrix", "conform_vector", "forward"]
