"""Evaluation metrics computed over a whole example sequence."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Tuple

import numpy as np

from ..core.types import Array, TaskType

MetricFn = Callable[[Array, Array, float], float]

_SAFE = 1e-9


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def default_metrics(task_type: TaskType | str) -> List[str]:
    if TaskType.parse(task_type) is TaskType.REGRESSION:
        return ["mae", "rmse", "r2"]
    return ["accuracy", "precision", "recall", "f1"]


def _confusion(outputs: Array, targets: Array, threshold: float) -> Tuple[float, float, float]:
    predicted = outputs >= threshold
    actual = targets >= 0.5
    tp = float(np.sum(predicted & actual))
    fp = float(np.sum(predicted & ~actual))
    fn = float(np.sum(~predicted & actual))
    return tp, fp, fn


def _accuracy(outputs: Array, targets: Array, threshold: float) -> float:
    return float(np.mean((outputs >= threshold) == (targets >= 0.5)))


def _precision(outputs: Array, targets: Array, threshold: float) -> float:
    tp, fp, _ = _confusion(outputs, targets, threshold)
    return tp / (tp + fp + _SAFE)


def _recall(outputs: Array, targets: Array, threshold: float) -> float:
    tp, _, fn = _confusion(outputs, targets, threshold)
    return tp / (tp + fn + _SAFE)


def _f1(outputs: Array, targets: Array, threshold: float) -> float:
    precision = _precision(outputs, targets, threshold)
    recall = _recall(outputs, targets, threshold)
    return 2 * precision * recall / (precision + recall + _SAFE)


def _mae(outputs: Array, targets: Array, _threshold: float) -> float:
    return float(np.mean(np.abs(outputs - targets)))


def _rmse(outputs: Array, targets: Array, _threshold: float) -> float:
    return float(np.sqrt(np.mean(np.square(outputs - targets))))


def _r2(outputs: Array, targets: Array, _threshold: float) -> float:
    ss_tot = float(np.sum(np.square(targets - targets.mean(axis=0, keepdims=True))))
    ss_res = float(np.sum(np.square(targets - outputs)))
    if ss_tot == 0:
        # constant targets: only an exact fit explains them
        return 1.0 if ss_res == 0 else 0.0
    return 1 - ss_res / (ss_tot + _SAFE)


_METRICS: Dict[str, MetricFn] = {
    "accuracy": _accuracy,
    "precision": _precision,
    "recall": _recall,
    "f1": _f1,
    "mae": _mae,
    "rmse": _rmse,
    "r2": _r2,
}


def compute_metric(
    name: str,
    outputs: Array,
    targets: Array,
    *,
    threshold: float = 0.5,
) -> MetricResult:
    """Compute ``name`` from post-activation ``outputs``.

    Classification metrics threshold the sigmoid outputs at ``threshold``;
    targets count as positive from 0.5 up.
    """

    key = name.lower()
    try:
        fn = _METRICS[key]
    except KeyError:
        available = ", ".join(sorted(_METRICS))
        raise KeyError(f"Unknown metric {name!r}. Available metrics: {available}") from None
    preds = np.asarray(outputs, dtype=np.float64)
    targs = np.asarray(targets, dtype=np.float64)
    return MetricResult(name=key, value=float(fn(preds, targs, threshold)))


def compute_metrics(
    names: Iterable[str],
    outputs: Array,
    targets: Array,
) -> Mapping[str, float]:
    results = (compute_metric(name, outputs, targets) for name in names)
    return {metric.name: metric.value for metric in results}


__all__ = ["MetricResult", "compute_metric", "compute_metrics", "default_metrics"]
