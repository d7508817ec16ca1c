"""Per-step metric sinks; both truncate their file when created."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Dict, List, Mapping

from .artifacts import git_sha


class _StepSink:
    """Callback base that keeps every ``every``-th step's numeric metrics."""

    def __init__(self, path: str | Path, *, run: str, every: int) -> None:
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("")
        self.run = run
        self.every = max(1, int(every))

    def _context(self, step: int) -> Dict[str, object]:
        return {"step": int(step), "run": self.run}

    def _emit(self, row: Mapping[str, object]) -> None:
        raise NotImplementedError

    def on_step(self, step: int, metrics: Mapping[str, float]) -> None:
        if step % self.every:
            return
        row = self._context(step)
        row.update({k: float(v) for k, v in metrics.items() if isinstance(v, (int, float))})
        self._emit(row)

    def __call__(self, step: int, metrics: Mapping[str, float]) -> None:
        self.on_step(step, metrics)


class JsonlSink(_StepSink):
    """One JSON object per logged step, tagged with run name, seed and git sha."""

    def __init__(
        self,
        path: str | Path,
        *,
        run: str = "train",
        seed: int | None = None,
        sha: str | None = None,
        every: int = 1,
    ) -> None:
        super().__init__(path, run=run, every=every)
        self.seed = seed
        self.sha = sha or git_sha()

    def _context(self, step: int) -> Dict[str, object]:
        context = super()._context(step)
        context.update(seed=self.seed, sha=self.sha)
        return context

    def _emit(self, row: Mapping[str, object]) -> None:
        with self.path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(row) + "\n")


class CsvSink(_StepSink):
    """CSV with a header fixed by the first logged row."""

    def __init__(self, path: str | Path, *, run: str = "train", every: int = 1) -> None:
        super().__init__(path, run=run, every=every)
        self.fieldnames: List[str] | None = None

    def _emit(self, row: Mapping[str, object]) -> None:
        write_header = self.fieldnames is None
        if write_header:
            self.fieldnames = sorted(row)
        with self.path.open("a", encoding="utf-8", newline="") as handle:
            writer = csv.DictWriter(handle, fieldnames=self.fieldnames, extrasaction="ignore")
            if write_header:
                writer.writeheader()
            writer.writerow(row)


__all__ = ["CsvSink", "JsonlSink"]
