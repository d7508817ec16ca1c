from __future__ import annotations

from typing import List, Mapping, Tuple

import numpy as np
import pytest

from backprop_playground.core.landscape import loss_at
from backprop_playground.core.network import TwoLayerNetwork
from backprop_playground.core.types import Example
from backprop_playground.data import get_dataset
from backprop_playground.training.trainer import Trainer, TrajectoryPoint


class _Capture:
    def __init__(self) -> None:
        self.history: List[Tuple[int, Mapping[str, float]]] = []

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        self.history.append((step, dict(metrics)))


def _xor_trainer(**kwargs) -> Trainer:
    dataset = get_dataset("xor")
    net = TwoLayerNetwork(input_size=2, hidden_size=4, learning_rate=0.5, seed=0)
    return Trainer(net, dataset.examples, **kwargs)


def test_examples_are_visited_round_robin():
    trainer = _xor_trainer()
    seen = []
    for _ in range(10):
        trainer.step()
        seen.append(tuple(trainer.last_example.inputs.tolist()))
    order = [tuple(example.inputs.tolist()) for example in trainer.examples]
    assert seen == order * 2 + order[:2]
    assert trainer.data_index == 2
    assert trainer.step_number == 10
    assert trainer.network.step_count == 10


def test_step_records_current_step_and_history():
    trainer = _xor_trainer()
    assert trainer.current_step is None
    record = trainer.step()
    assert trainer.current_step is record
    assert list(trainer.loss_history) == [(1, record.backward.loss)]


def test_history_is_bounded():
    trainer = _xor_trainer(history_limit=5, trajectory_limit=3)
    trainer.run(12)
    assert len(trainer.loss_history) == 5
    assert [step for step, _ in trainer.loss_history] == [8, 9, 10, 11, 12]
    assert [point.step for point in trainer.trajectory] == [10, 11, 12]


def test_default_limits_keep_more_losses_than_trajectory_points():
    trainer = _xor_trainer()
    trainer.run(150)
    assert len(trainer.loss_history) == 150
    assert len(trainer.trajectory) == 100
    assert trainer.trajectory[0].step == 51
    with pytest.raises(ValueError):
        _xor_trainer(trajectory_limit=0)


def test_trajectory_uses_pre_update_snapshot():
    trainer = _xor_trainer(track=("weights2", (1, 0)))
    record = trainer.step()
    point = trainer.trajectory[-1]
    assert isinstance(point, TrajectoryPoint)
    assert point.weight_value == record.forward.weights2[1, 0]
    assert point.weight_gradient == record.backward.weights2_gradients[1, 0]
    assert point.loss == record.backward.loss


def test_out_of_range_track_skips_trajectory():
    trainer = _xor_trainer(track=("biases1", (99,)))
    trainer.run(3)
    assert len(trainer.trajectory) == 0
    assert len(trainer.loss_history) == 3


def test_unknown_track_tensor_rejected():
    with pytest.raises(KeyError):
        _xor_trainer(track=("weights3", (0, 0)))


def test_callbacks_receive_loss_and_tracked_weight():
    capture = _Capture()
    plain: list = []
    trainer = _xor_trainer(callbacks=[capture, lambda step, metrics: plain.append(step)])
    trainer.run(4)
    assert [step for step, _ in capture.history] == [1, 2, 3, 4]
    assert plain == [1, 2, 3, 4]
    _, metrics = capture.history[0]
    assert set(metrics) == {"loss", "weight_value", "weight_gradient"}


def test_callback_can_stop_the_run():
    trainer = _xor_trainer()

    def _stop_at_three(step, metrics):
        if step == 3:
            trainer.stop()

    trainer.callbacks.append(_stop_at_three)
    executed = trainer.run(100)
    assert executed == 3
    assert trainer.step_number == 3

    assert trainer.run(2) == 2
    assert trainer.step_number == 5


def test_run_sleeps_between_steps(monkeypatch):
    sleeps: list = []
    monkeypatch.setattr("backprop_playground.training.trainer.time.sleep", sleeps.append)
    trainer = _xor_trainer()
    trainer.run(3, interval=0.25)
    assert sleeps == [0.25, 0.25]


def test_reset_clears_history_and_counters():
    trainer = _xor_trainer()
    trainer.run(6)
    trainer.reset(seed=4)
    assert trainer.step_number == 0
    assert trainer.data_index == 0
    assert trainer.current_step is None
    assert not trainer.loss_history
    assert not trainer.trajectory
    assert trainer.network.step_count == 0
    expected = TwoLayerNetwork(input_size=2, hidden_size=4, learning_rate=0.5, seed=4)
    assert np.array_equal(trainer.network.get_weights().weights1, expected.get_weights().weights1)


def test_reconfigure_clears_only_when_network_changes():
    trainer = _xor_trainer()
    trainer.run(3)
    assert trainer.reconfigure(hidden_size=4) is False
    assert trainer.step_number == 3

    assert trainer.reconfigure(hidden_size=7) is True
    assert trainer.step_number == 0
    assert not trainer.loss_history
    assert trainer.network.get_weights().weights2.shape == (7, 1)


def test_set_examples_requires_data():
    trainer = _xor_trainer()
    with pytest.raises(ValueError):
        trainer.set_examples([])
    trainer.set_examples([Example(inputs=[1.0, 1.0], targets=[0.0])])
    trainer.run(2)
    assert trainer.data_index == 0


def test_evaluate_reports_classification_metrics():
    trainer = _xor_trainer()
    results = trainer.evaluate()
    assert set(results) == {"loss", "accuracy", "precision", "recall", "f1"}
    assert 0.0 <= results["accuracy"] <= 1.0
    assert results["loss"] == pytest.approx(
        trainer.network.evaluate_dataset(trainer.examples)
    )


def test_evaluate_reports_regression_metrics():
    dataset = get_dataset("linear_regression", n_samples=20)
    net = TwoLayerNetwork(input_size=1, hidden_size=2, task_type="regression", seed=0)
    trainer = Trainer(net, dataset.examples)
    results = trainer.evaluate()
    assert set(results) == {"loss", "mae", "rmse", "r2"}
    assert results["rmse"] >= 0.0


def test_landscape_before_and_after_first_step():
    trainer = _xor_trainer()
    assert trainer.landscape() is None
    trainer.run(2)
    # the third example is the first with a non-zero weights1[0, 0] input
    record = trainer.step()
    current = trainer.network.get_weights()
    landscape = trainer.landscape(span=1.0, num_points=10)

    assert landscape.tensor == "weights1"
    assert landscape.center == record.forward.weights1[0, 0]
    assert landscape.center != current.weights1[0, 0]
    assert len(landscape.losses) == 10

    upcoming = trainer.examples[trainer.data_index]
    assert upcoming is trainer.examples[3]
    shifted = current.copy()
    shifted.weights1[0, 0] = landscape.weight_values[3]
    assert landscape.losses[3] == pytest.approx(
        loss_at(shifted, upcoming.inputs, upcoming.targets, "classification")
    )
    assert np.array_equal(trainer.network.get_weights().weights1, current.weights1)


def test_track_accepts_bare_index_for_vectors():
    trainer = _xor_trainer(track=("biases1", 2))
    assert trainer.track == ("biases1", (2,))
    record = trainer.step()
    assert trainer.trajectory[-1].weight_value == record.forward.biases1[2]
    landscape = trainer.landscape(num_points=5)
    assert landscape.index == (2,)
    assert landscape.center == record.forward.biases1[2]
