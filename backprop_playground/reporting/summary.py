"""Deterministic run summaries built from the per-step JSONL log."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

import numpy as np

_NON_METRIC_KEYS = {"step", "seed"}

SUMMARY_VERSION = 1


def compute_auc(points: Sequence[float]) -> float:
    """Return the trapezoidal area under ``points`` with unit step spacing."""

    if not points:
        return 0.0
    y = np.asarray(points, dtype=np.float64)
    # np.trapz was renamed to np.trapezoid in numpy 2.0
    trapezoid = getattr(np, "trapezoid", None) or np.trapz
    return float(trapezoid(y, dx=1.0))


def _series(records: Sequence[Mapping[str, object]]) -> Dict[str, List[float]]:
    series: Dict[str, List[float]] = {}
    for record in records:
        for key, value in record.items():
            if key in _NON_METRIC_KEYS or isinstance(value, bool):
                continue
            if isinstance(value, (int, float)):
                series.setdefault(key, []).append(float(value))
    return series


def _describe(values: Sequence[float], tail_window: int) -> Mapping[str, float]:
    arr = np.asarray(values, dtype=np.float64)
    tail = arr[-tail_window:] if tail_window else arr[:0]
    return {
        "min": float(arr.min()),
        "max": float(arr.max()),
        "mean": float(arr.mean()),
        "first": float(arr[0]),
        "last": float(arr[-1]),
        "tail_mean": float(tail.mean()) if tail.size else 0.0,
        "tail_auc": compute_auc(tail.tolist()),
    }


def build_summary(
    records: Sequence[Mapping[str, object]],
    *,
    tail: int = 32,
    final: Mapping[str, float] | None = None,
) -> Mapping[str, object]:
    """Summarise per-step ``records``; ``final`` holds end-of-run evaluation."""

    tail_window = min(tail, len(records))
    return {
        "version": SUMMARY_VERSION,
        "records": len(records),
        "tail_window": tail_window,
        "metrics": {
            name: _describe(values, tail_window) for name, values in _series(records).items()
        },
        "final": {k: float(v) for k, v in (final or {}).items()},
    }


def read_records(metrics_jsonl: str | Path) -> List[Mapping[str, object]]:
    path = Path(metrics_jsonl)
    if not path.exists():
        return []
    lines = (line.strip() for line in path.read_text().splitlines())
    return [json.loads(line) for line in lines if line]


def write_summary(
    metrics_jsonl: str | Path,
    out_summary_json: str | Path,
    *,
    tail: int = 32,
    final: Mapping[str, float] | None = None,
) -> str:
    """Summarise ``metrics_jsonl`` into ``out_summary_json`` with sorted keys."""

    out_path = Path(out_summary_json)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    summary = build_summary(read_records(metrics_jsonl), tail=tail, final=final)
    out_path.write_text(json.dumps(summary, sort_keys=True, indent=2))
    return str(out_path)


__all__ = ["SUMMARY_VERSION", "build_summary", "compute_auc", "read_records", "write_summary"]
