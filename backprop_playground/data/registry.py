"""Dataset registry and metadata contracts."""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, MutableMapping, Tuple

from ..core.types import Example, TaskType


@dataclass(frozen=True)
class DataSpec:
    """Structural information about a dataset.

    Attributes
    ----------
    input_size:
        Length of every example's input vector.
    output_size:
        Length of every example's target vector.
    task_type:
        :class:`~backprop_playground.core.types.TaskType` the targets are
        meant for.
    hidden_size, learning_rate:
        Network settings known to train well on this dataset.
    """

    input_size: int
    output_size: int
    task_type: TaskType
    hidden_size: int = 6
    learning_rate: float = 0.05


@dataclass(frozen=True)
class DatasetSpec:
    """A finite, ordered sequence of examples registered in the system."""

    name: str
    examples: Tuple[Example, ...]
    data_spec: DataSpec
    provenance: Dict[str, Any]

    def __len__(self) -> int:
        return len(self.examples)

    def __iter__(self) -> Iterator[Example]:
        return iter(self.examples)

    @property
    def task_type(self) -> TaskType:
        return self.data_spec.task_type


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("xor")
        def make_xor(**kwargs):
            ...

    or directly::

        register_dataset("xor", make_xor)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(dataset: str | None = None, /, **options: Any) -> DatasetSpec:
    """Return the :class:`DatasetSpec` for ``dataset``."""

    if dataset is None:
        if "name" in options:
            dataset = str(options.pop("name"))
        else:
            raise TypeError("Dataset name must be provided")

    if dataset not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset {dataset!r}. Available datasets: {available}")

    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if not spec.examples:
        raise ValueError(f"Dataset {spec.name!r} produced no examples")
    data_spec = spec.data_spec
    for idx, example in enumerate(spec.examples):
        if example.inputs.shape != (data_spec.input_size,):
            raise ValueError(
                f"Example {idx} of {spec.name!r} has inputs of shape {example.inputs.shape}"
            )
        if example.targets.shape != (data_spec.output_size,):
            raise ValueError(
                f"Example {idx} of {spec.name!r} has targets of shape {example.targets.shape}"
            )


def iter_examples(spec: DatasetSpec | Iterable[Example]) -> Iterator[Example]:
    """Cycle through ``spec`` forever in its stored order."""

    return itertools.cycle(tuple(spec))


__all__ = [
    "DataSpec",
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "iter_examples",
    "register_dataset",
]
