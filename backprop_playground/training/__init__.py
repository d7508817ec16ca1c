"""Training loop driver, metrics and run pipelines."""

from . import metrics, pipelines, trainer
from .pipelines import load_preset, presets, run_pipeline
from .trainer import Trainer, TrajectoryPoint

__all__ = [
    "Trainer",
    "TrajectoryPoint",
    "load_preset",
    "metrics",
    "pipelines",
    "presets",
    "run_pipeline",
    "trainer",
]
