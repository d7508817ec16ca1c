"""Pure in-memory toy datasets for the playground."""

from __future__ import annotations

from typing import List

import numpy as np

from ..core.types import Example, TaskType
from .registry import DatasetSpec, DataSpec, register_dataset


def _classification(
    name: str,
    examples: List[Example],
    *,
    seed: int | None,
    hidden_size: int = 6,
    learning_rate: float = 0.05,
    **provenance: object,
) -> DatasetSpec:
    data_spec = DataSpec(
        input_size=2,
        output_size=1,
        task_type=TaskType.CLASSIFICATION,
        hidden_size=hidden_size,
        learning_rate=learning_rate,
    )
    return DatasetSpec(
        name=name,
        examples=tuple(examples),
        data_spec=data_spec,
        provenance={"type": name, "seed": seed, "n_examples": len(examples), **provenance},
    )


def _labelled(x: float, y: float, label: int) -> Example:
    return Example(inputs=[x, y], targets=[float(label)], label=label)


@register_dataset("xor")
def make_xor(**_: object) -> DatasetSpec:
    examples = [
        _labelled(0.0, 0.0, 0),
        _labelled(0.0, 1.0, 1),
        _labelled(1.0, 0.0, 1),
        _labelled(1.0, 1.0, 0),
    ]
    return _classification("xor", examples, seed=None)


@register_dataset("circle")
def make_circle(
    *, n_samples: int = 50, seed: int = 0, radius_sq: float = 2.0, **_: object
) -> DatasetSpec:
    """Points within radius 2.5; label 1 inside ``x^2 + y^2 < radius_sq``."""

    rng = np.random.default_rng(seed)
    examples = []
    for _ in range(n_samples):
        r = rng.random() * 2.5
        angle = rng.random() * 2 * np.pi
        x, y = r * np.cos(angle), r * np.sin(angle)
        examples.append(_labelled(x, y, int(x * x + y * y < radius_sq)))
    return _classification("circle", examples, seed=seed, radius_sq=radius_sq)


@register_dataset("linear_separable")
def make_linear_separable(*, n_samples: int = 50, seed: int = 0, **_: object) -> DatasetSpec:
    """Uniform points in ``[-2, 2]^2`` split by the line ``y = 0.5 x + 0.2``."""

    rng = np.random.default_rng(seed)
    examples = []
    for _ in range(n_samples):
        x = rng.random() * 4 - 2
        y = rng.random() * 4 - 2
        examples.append(_labelled(x, y, int(y > 0.5 * x + 0.2)))
    return _classification("linear_separable", examples, seed=seed)


@register_dataset("moons")
def make_moons(*, n_samples: int = 50, **_: object) -> DatasetSpec:
    """Two interleaved half circles; ``n_samples`` points per class."""

    examples = []
    for i in range(n_samples):
        d = i / n_samples
        examples.append(_labelled(np.cos(np.pi * d) - 0.5, np.sin(np.pi * d) - 0.2, 0))
        examples.append(_labelled(0.5 - np.cos(np.pi * d), 0.2 - np.sin(np.pi * d) - 0.5, 1))
    return _classification("moons", examples, seed=None, hidden_size=8)


@register_dataset("spiral")
def make_spiral(*, n_samples: int = 25, seed: int = 0, **_: object) -> DatasetSpec:
    """Two interleaved spirals with ``n_samples`` points per class."""

    rng = np.random.default_rng(seed)
    examples = []
    for i in range(n_samples):
        r = i / n_samples * 5
        for label in (0, 1):
            t = i / n_samples * np.pi * 2.5 + label * np.pi + rng.random() * 0.5
            examples.append(_labelled(r * np.sin(t), r * np.cos(t), label))
    return _classification(
        "spiral", examples, seed=seed, hidden_size=10, learning_rate=0.1
    )


@register_dataset("linear_regression")
def make_linear_regression(
    *,
    n_samples: int = 50,
    seed: int = 0,
    slope: float = 1.8,
    intercept: float = 0.5,
    noise: float = 0.5,
    **_: object,
) -> DatasetSpec:
    """Samples of ``y = slope * x + intercept`` plus uniform noise."""

    rng = np.random.default_rng(seed)
    examples = []
    for _ in range(n_samples):
        x = rng.random() * 2 - 1
        y = slope * x + intercept + (rng.random() - 0.5) * noise
        examples.append(Example(inputs=[x], targets=[y]))
    data_spec = DataSpec(
        input_size=1,
        output_size=1,
        task_type=TaskType.REGRESSION,
        hidden_size=2,
        learning_rate=0.01,
    )
    return DatasetSpec(
        name="linear_regression",
        examples=tuple(examples),
        data_spec=data_spec,
        provenance={
            "type": "linear_regression",
            "seed": seed,
            "n_examples": n_samples,
            "slope": slope,
            "intercept": intercept,
            "noise": noise,
        },
    )


__all__ = [
    "make_circle",
    "make_linear_regression",
    "make_linear_separable",
    "make_moons",
    "make_spiral",
    "make_xor",
]
