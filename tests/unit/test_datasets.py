import itertools

import numpy as np
import pytest

from backprop_playground.core.types import Example, TaskType
from backprop_playground.data import registry
from backprop_playground.data import (
    DatasetSpec,
    DataSpec,
    available_datasets,
    get_dataset,
    iter_examples,
    register_dataset,
)

BUILTINS = ["circle", "linear_regression", "linear_separable", "moons", "spiral", "xor"]


def test_builtins_are_registered():
    assert set(BUILTINS) <= set(available_datasets())


@pytest.mark.parametrize("name", BUILTINS)
def test_examples_match_declared_shapes(name):
    spec = get_dataset(name)
    assert spec.name == name
    for example in spec:
        assert example.inputs.shape == (spec.data_spec.input_size,)
        assert example.targets.shape == (spec.data_spec.output_size,)
    assert spec.provenance["type"] == name


@pytest.mark.parametrize("name", ["circle", "linear_separable", "spiral", "linear_regression"])
def test_seeded_generation_is_deterministic(name):
    first = get_dataset(name, seed=5)
    second = get_dataset(name, seed=5)
    other = get_dataset(name, seed=6)
    assert [e.inputs.tolist() for e in first] == [e.inputs.tolist() for e in second]
    assert [e.inputs.tolist() for e in first] != [e.inputs.tolist() for e in other]


def test_xor_truth_table():
    spec = get_dataset("xor")
    table = [(e.inputs.tolist(), e.targets.tolist()) for e in spec]
    assert table == [
        ([0.0, 0.0], [0.0]),
        ([0.0, 1.0], [1.0]),
        ([1.0, 0.0], [1.0]),
        ([1.0, 1.0], [0.0]),
    ]
    assert spec.data_spec.hidden_size == 6
    assert spec.data_spec.learning_rate == 0.05


def test_circle_labels_follow_radius():
    spec = get_dataset("circle", n_samples=80, seed=1)
    assert len(spec) == 80
    for example in spec:
        x, y = example.inputs
        assert x * x + y * y <= 2.5**2 + 1e-9
        assert example.label == int(x * x + y * y < 2.0)


def test_linear_separable_labels_follow_line():
    for example in get_dataset("linear_separable", seed=3):
        x, y = example.inputs
        assert -2.0 <= x <= 2.0 and -2.0 <= y <= 2.0
        assert example.targets[0] == float(y > 0.5 * x + 0.2)


def test_moons_and_spiral_are_balanced():
    moons = get_dataset("moons", n_samples=10)
    spiral = get_dataset("spiral", n_samples=10)
    assert len(moons) == 20
    assert len(spiral) == 20
    assert sum(e.label for e in moons) == 10
    assert sum(e.label for e in spiral) == 10
    assert moons.data_spec.hidden_size == 8
    assert spiral.data_spec.hidden_size == 10
    assert spiral.data_spec.learning_rate == 0.1


def test_linear_regression_follows_the_line():
    spec = get_dataset("linear_regression", noise=0.0)
    assert spec.task_type is TaskType.REGRESSION
    assert spec.data_spec.input_size == 1
    assert spec.data_spec.hidden_size == 2
    assert spec.data_spec.learning_rate == 0.01
    for example in spec:
        assert example.targets[0] == pytest.approx(1.8 * example.inputs[0] + 0.5)


def test_unknown_dataset_lists_available():
    with pytest.raises(KeyError, match="xor"):
        get_dataset("mnist")


def test_iter_examples_cycles_in_order():
    spec = get_dataset("xor")
    cycled = list(itertools.islice(iter_examples(spec), 6))
    assert cycled[4] is spec.examples[0]
    assert cycled[5] is spec.examples[1]


def test_register_and_validate_custom_dataset(monkeypatch):
    monkeypatch.setattr(registry, "_REGISTRY", dict(registry._REGISTRY))

    def _bad(**_):
        return DatasetSpec(
            name="bad",
            examples=(Example(inputs=[1.0, 2.0, 3.0], targets=[1.0]),),
            data_spec=DataSpec(input_size=2, output_size=1, task_type=TaskType.CLASSIFICATION),
            provenance={},
        )

    register_dataset("bad", _bad)
    with pytest.raises(ValueError, match="inputs"):
        get_dataset("bad")

    @register_dataset("single")
    def _single(**_):
        return DatasetSpec(
            name="single",
            examples=(Example(inputs=np.zeros(2), targets=[0.0]),),
            data_spec=DataSpec(input_size=2, output_size=1, task_type=TaskType.CLASSIFICATION),
            provenance={"type": "single"},
        )

    assert len(get_dataset("single")) == 1
    assert "single" in available_datasets()
