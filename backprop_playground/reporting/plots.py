"""Headless-safe plotting adapters."""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from ..core.landscape import LossLandscape


def _pyplot():
    import matplotlib

    matplotlib.use("Agg", force=True)
    import matplotlib.pyplot as plt  # imported lazily for headless safety

    return plt


class PlotAdapter:
    """Collect the loss curve and optionally emit matplotlib figures."""

    def __init__(self, run_dir: str | Path, enable_plots: bool = False):
        self.enable_plots = enable_plots
        self.run_dir = Path(run_dir)
        self._history: List[Tuple[int, float]] = []
        if self.enable_plots:
            self.run_dir.mkdir(parents=True, exist_ok=True)

    def on_step(self, step: int, metrics):
        if not self.enable_plots:
            return
        self._history.append((step, float(metrics.get("loss", 0.0))))

    __call__ = on_step

    def plot_landscape(
        self, landscape: LossLandscape | None, current: float | None = None
    ) -> Path | None:
        """Plot loss against the swept weight, marking ``current`` if given."""

        if not self.enable_plots or landscape is None:
            return None
        plt = _pyplot()
        fig, ax = plt.subplots()
        ax.plot(landscape.weight_values, landscape.losses)
        if current is not None:
            ax.axvline(current, color="tab:red", linestyle="--")
        label = f"{landscape.tensor}{list(landscape.index)}"
        ax.set_xlabel(label)
        ax.set_ylabel("Loss")
        ax.set_title(f"Loss vs {label}")
        plot_path = self.run_dir / "landscape.png"
        fig.savefig(plot_path)
        plt.close(fig)
        return plot_path

    def close(self) -> None:
        if not self.enable_plots or not self._history:
            return
        plt = _pyplot()
        steps, losses = zip(*self._history)
        fig, ax = plt.subplots()
        ax.plot(steps, losses)
        ax.set_xlabel("Step")
        ax.set_ylabel("Loss")
        ax.set_title("Training Curve")
        fig.savefig(self.run_dir / "loss.png")
        plt.close(fig)
