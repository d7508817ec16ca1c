"""Backprop playground public API."""

from .core import activations, landscape, losses, types  # noqa: F401
from .core.errors import (
    DimensionMismatchError,
    DimensionMismatchWarning,
    InvalidConfigurationError,
)
from .core.landscape import LossLandscape, loss_at, loss_landscape
from .core.network import TwoLayerNetwork, forward
from .core.types import Example, Parameters, TaskType, TrainingStep
from .data import available_datasets, get_dataset
from .training.pipelines import load_preset, presets, run_pipeline
from .training.trainer import Trainer

__version__ = "0.1.0"

__all__ = [
    "DimensionMismatchError",
    "DimensionMismatchWarning",
    "Example",
    "InvalidConfigurationError",
    "LossLandscape",
    "Parameters",
    "TaskType",
    "Trainer",
    "TrainingStep",
    "TwoLayerNetwork",
    "activations",
    "available_datasets",
    "forward",
    "get_dataset",
    "landscape",
    "load_preset",
    "loss_at",
    "loss_landscape",
    "losses",
    "presets",
    "run_pipeline",
    "types",
]
