"""Round-robin training loop driver for the two-layer network."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, Mapping, Sequence, Tuple, Union

import numpy as np

from ..core.landscape import LossLandscape, as_index, loss_landscape
from ..core.network import TwoLayerNetwork
from ..core.types import PARAMETER_NAMES, Example, TrainingStep
from .metrics import compute_metrics, default_metrics

TrackedWeight = Tuple[str, Union[int, Tuple[int, ...]]]


@dataclass(frozen=True)
class TrajectoryPoint:
    """Tracked weight value and gradient at one step, before the update."""

    step: int
    loss: float
    weight_value: float
    weight_gradient: float


class Trainer:
    """Drive ``train_step`` over a fixed example sequence.

    Examples are visited in their stored order and wrap around. The driver
    owns the step counter, the bounded loss history and the trajectory of
    one tracked weight; the network only owns parameters. Calls are
    synchronous, so a callback may call :meth:`stop` to end :meth:`run`
    after the current step.
    """

    def __init__(
        self,
        network: TwoLayerNetwork,
        examples: Iterable[Example],
        *,
        callbacks: Sequence[object] | None = None,
        history_limit: int = 200,
        trajectory_limit: int = 100,
        track: TrackedWeight = ("weights1", (0, 0)),
    ) -> None:
        if history_limit <= 0 or trajectory_limit <= 0:
            raise ValueError("history_limit and trajectory_limit must be positive")
        tensor, index = track
        if tensor not in PARAMETER_NAMES:
            raise KeyError(f"Unknown parameter tensor: {tensor}")
        self.network = network
        self.callbacks = list(callbacks or [])
        self.history_limit = int(history_limit)
        self.trajectory_limit = int(trajectory_limit)
        self.track: Tuple[str, Tuple[int, ...]] = (tensor, as_index(index))
        self._stop_requested = False
        self.set_examples(examples)

    # ------------------------------------------------------------------
    # State

    def _clear(self) -> None:
        self.current_step: TrainingStep | None = None
        self.last_example: Example | None = None
        self.step_number = 0
        self.data_index = 0
        self.loss_history: Deque[Tuple[int, float]] = deque(maxlen=self.history_limit)
        self.trajectory: Deque[TrajectoryPoint] = deque(maxlen=self.trajectory_limit)

    def set_examples(self, examples: Iterable[Example]) -> None:
        """Swap the example sequence and clear every counter and history."""

        examples = tuple(examples)
        if not examples:
            raise ValueError("Trainer requires at least one example")
        self.examples: Tuple[Example, ...] = examples
        self._clear()

    def reset(self, seed: int | None = None) -> None:
        self.network.reset(seed)
        self._clear()

    def reconfigure(self, **changes: object) -> bool:
        """Reconfigure the network; history is cleared when it reinitialises."""

        changed = self.network.reconfigure(**changes)  # type: ignore[arg-type]
        if changed:
            self._clear()
        return changed

    # ------------------------------------------------------------------
    # Stepping

    def step(self) -> TrainingStep:
        """Train on the next example and record the result."""

        example = self.examples[self.data_index]
        record = self.network.train_step(example.inputs, example.targets)
        self.data_index = (self.data_index + 1) % len(self.examples)
        self.step_number += 1
        self.current_step = record
        self.last_example = example

        loss = record.backward.loss
        self.loss_history.append((self.step_number, loss))
        metrics = {"loss": loss}
        point = self._trajectory_point(record)
        if point is not None:
            self.trajectory.append(point)
            metrics["weight_value"] = point.weight_value
            metrics["weight_gradient"] = point.weight_gradient
        self._emit_step(self.step_number, metrics)
        return record

    def run(self, steps: int, *, interval: float = 0.0) -> int:
        """Call :meth:`step` up to ``steps`` times, ``interval`` seconds apart.

        Returns the number of steps actually taken.
        """

        self._stop_requested = False
        executed = 0
        while executed < steps and not self._stop_requested:
            self.step()
            executed += 1
            if interval > 0 and executed < steps and not self._stop_requested:
                time.sleep(interval)
        return executed

    def stop(self) -> None:
        self._stop_requested = True

    # ------------------------------------------------------------------
    # Inspection

    def evaluate(self, metric_names: Sequence[str] | None = None) -> Mapping[str, float]:
        """Return the mean loss and metrics over the whole example sequence."""

        names = list(metric_names or default_metrics(self.network.task_type))
        outputs = np.stack([self.network.predict(example.inputs) for example in self.examples])
        targets = np.stack([example.targets for example in self.examples])
        results = {"loss": self.network.evaluate_dataset(self.examples)}
        results.update(compute_metrics(names, outputs, targets))
        return results

    def landscape(self, *, span: float = 2.0, num_points: int = 50) -> LossLandscape | None:
        """Sample the loss around the tracked weight for the next example.

        The sweep is centred on the tracked weight as it was before the last
        update, and evaluated on the example the next :meth:`step` will train
        on. Uses a copy of the current parameters; ``None`` before the first
        step.
        """

        if self.current_step is None:
            return None
        tensor, index = self.track
        example = self.examples[self.data_index]
        return loss_landscape(
            self.network.get_weights(),
            example.inputs,
            example.targets,
            self.network.task_type,
            tensor=tensor,
            index=index,
            span=span,
            num_points=num_points,
            center=self.trajectory[-1].weight_value if self.trajectory else None,
        )

    def _trajectory_point(self, record: TrainingStep) -> TrajectoryPoint | None:
        tensor, index = self.track
        values = getattr(record.forward, tensor)
        if len(index) != values.ndim or any(
            not 0 <= i < size for i, size in zip(index, values.shape)
        ):
            return None
        return TrajectoryPoint(
            step=self.step_number,
            loss=record.backward.loss,
            weight_value=float(values[index]),
            weight_gradient=float(record.backward.gradient_for(tensor)[index]),
        )

    def _emit_step(self, step: int, metrics: Mapping[str, float]) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_step"):
                callback.on_step(step, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(step, metrics)


__all__ = ["Trainer", "TrajectoryPoint"]
