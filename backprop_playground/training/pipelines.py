"""Pipeline assembly: presets, config resolution and artifact-producing runs."""

from __future__ import annotations

import json
import time
from copy import deepcopy
from dataclasses import asdict
from pathlib import Path
from typing import Dict, Mapping, Tuple

from ..core.landscape import as_index
from ..core.network import TwoLayerNetwork
from ..core.types import RunResult, TaskType
from ..data import registry
from ..reporting.artifacts import write_json, write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from ..reporting.summary import write_summary
from .trainer import Trainer

_STEPS: Dict[str, int] = {
    "xor": 4000,
    "circle": 3000,
    "linear_separable": 2000,
    "moons": 3000,
    "spiral": 5000,
    "linear_regression": 500,
}


def _dataset_preset(name: str, steps: int) -> Mapping[str, object]:
    defaults = registry.get_dataset(name).data_spec
    return {
        "data": {"name": name, "options": {"seed": 0}},
        "model": {
            "hidden_size": defaults.hidden_size,
            "learning_rate": defaults.learning_rate,
            "task_type": defaults.task_type.value,
            "seed": 7,
        },
        "train": {
            "steps": steps,
            "interval": 0.0,
            "log_every": 1,
            "history_limit": 200,
            "trajectory_limit": 100,
            "track": {"tensor": "weights1", "index": [0, 0]},
            "landscape": {"span": 2.0, "num_points": 50},
            "run_dir": f"runs/{name}",
            "enable_plots": False,
        },
    }


_PRESETS: Dict[str, Mapping[str, object]] = {
    name: _dataset_preset(name, steps) for name, steps in _STEPS.items()
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None

REQUIRED_SECTIONS = {"data", "model", "train"}


def read_config_file(path: Path) -> Mapping[str, object]:
    """Decode a JSON or YAML config file into a mapping."""

    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        try:
            import yaml  # type: ignore
        except Exception as exc:  # pragma: no cover - optional dependency
            raise RuntimeError("PyYAML is required to load config files in YAML format") from exc
        data = yaml.safe_load(text) or {}
    elif suffix == ".json":
        data = json.loads(text or "{}")
    else:
        raise ValueError(f"Unsupported config file type: {path.suffix}")

    if not isinstance(data, Mapping):
        raise TypeError(f"Config {path.name} must decode to a mapping")
    return data


def _file_presets() -> Dict[str, Mapping[str, object]]:
    global _FILE_PRESETS_CACHE
    if _FILE_PRESETS_CACHE is None:
        presets: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = REQUIRED_SECTIONS - set(data)
                if missing:
                    missing_str = ", ".join(sorted(missing))
                    raise KeyError(f"Preset {file.name} is missing required sections: {missing_str}")
                presets[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = presets
    return {name: deepcopy(cfg) for name, cfg in _FILE_PRESETS_CACHE.items()}


def presets() -> Mapping[str, Mapping[str, object]]:
    combined: Dict[str, Mapping[str, object]] = {}
    combined.update({name: deepcopy(cfg) for name, cfg in _PRESETS.items()})
    combined.update(_file_presets())
    return combined


def load_preset(name: str) -> Mapping[str, object]:
    file_overrides = _file_presets()
    if name in file_overrides:
        return file_overrides[name]
    try:
        return deepcopy(_PRESETS[name])
    except KeyError as exc:
        raise KeyError(f"Unknown preset: {name}") from exc


def build_network(
    model_cfg: Mapping[str, object], data_spec: registry.DataSpec
) -> TwoLayerNetwork:
    """Create a network sized for ``data_spec`` from the ``model`` section."""

    input_size = int(model_cfg.get("input_size", data_spec.input_size))
    output_size = int(model_cfg.get("output_size", data_spec.output_size))
    if input_size != data_spec.input_size:
        raise ValueError(
            f"Configured input_size={input_size} but dataset has {data_spec.input_size}"
        )
    if output_size != data_spec.output_size:
        raise ValueError(
            f"Configured output_size={output_size} but dataset has {data_spec.output_size}"
        )
    task_type = TaskType.parse(model_cfg.get("task_type", data_spec.task_type))
    if task_type is not data_spec.task_type:
        raise ValueError(
            f"Configured task_type={task_type.value} but dataset targets "
            f"are for {data_spec.task_type.value}"
        )
    seed = model_cfg.get("seed")
    return TwoLayerNetwork(
        input_size=input_size,
        hidden_size=int(model_cfg.get("hidden_size", data_spec.hidden_size)),
        output_size=output_size,
        learning_rate=float(model_cfg.get("learning_rate", data_spec.learning_rate)),
        task_type=task_type,
        seed=int(seed) if seed is not None else None,
        strict=bool(model_cfg.get("strict", False)),
    )


def _track(train_cfg: Mapping[str, object]) -> Tuple[str, Tuple[int, ...]]:
    track_cfg = dict(train_cfg.get("track") or {})
    tensor = str(track_cfg.get("tensor", "weights1"))
    index = as_index(track_cfg.get("index", [0, 0]))
    return tensor, index


def run_pipeline(config: Mapping[str, object]) -> RunResult:
    data_cfg = dict(config["data"])
    model_cfg = dict(config["model"])
    train_cfg = dict(config["train"])

    dataset = registry.get_dataset(data_cfg["name"], **dict(data_cfg.get("options") or {}))
    network = build_network(model_cfg, dataset.data_spec)

    seed = model_cfg.get("seed")
    steps = int(train_cfg.get("steps", 1))
    log_every = int(train_cfg.get("log_every", 1))
    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)

    _print_startup_summary(
        dataset_name=dataset.name,
        network=network,
        examples=len(dataset),
        steps=steps,
    )

    jsonl = JsonlSink(run_dir / "metrics.jsonl", run=dataset.name, seed=seed, every=log_every)
    csv_sink = CsvSink(run_dir / "metrics.csv", run=dataset.name, every=log_every)
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))

    trainer = Trainer(
        network,
        dataset.examples,
        callbacks=[jsonl, csv_sink, plots],
        history_limit=int(train_cfg.get("history_limit", 200)),
        trajectory_limit=int(train_cfg.get("trajectory_limit", 100)),
        track=_track(train_cfg),
    )
    executed = trainer.run(steps, interval=float(train_cfg.get("interval", 0.0)))
    final_metrics = dict(trainer.evaluate())

    last_step_path = ""
    if trainer.current_step is not None:
        last_step_path = write_json(
            run_dir / "last_step.json",
            {"step": trainer.step_number, **trainer.current_step.to_dict()},
        )

    landscape_cfg = dict(train_cfg.get("landscape") or {})
    landscape = trainer.landscape(
        span=float(landscape_cfg.get("span", 2.0)),
        num_points=int(landscape_cfg.get("num_points", 50)),
    )
    if landscape is not None:
        write_json(
            run_dir / "landscape.json",
            {
                "tensor": landscape.tensor,
                "index": list(landscape.index),
                "center": landscape.center,
                "points": landscape.points(),
                "trajectory": [asdict(point) for point in trainer.trajectory],
            },
        )
    plots.plot_landscape(landscape, current=landscape.center if landscape else None)
    plots.close()

    manifest = write_manifest(
        run_dir / "manifest.json",
        config=_safe_config(config),
        dataset_provenance=dataset.provenance,
        network={
            "input_size": network.input_size,
            "hidden_size": network.hidden_size,
            "output_size": network.output_size,
            "task_type": network.task_type.value,
            "parameter_count": network.parameter_count(),
        },
    )
    summary_path = write_summary(
        jsonl.path,
        run_dir / "summary.json",
        tail=int(train_cfg.get("summary_tail", 32)),
        final=final_metrics,
    )
    write_json(run_dir / "config.json", _safe_config(config))

    return RunResult(
        steps=executed,
        metrics_path=str(jsonl.path),
        manifest_path=manifest,
        summary_path=summary_path,
        last_step_path=last_step_path,
        final_loss=float(final_metrics["loss"]),
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if train_cfg.get("run_dir"):
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _safe_config(config: Mapping[str, object]) -> Mapping[str, object]:
    return json.loads(json.dumps(config, default=str))


def _print_startup_summary(
    *,
    dataset_name: str,
    network: TwoLayerNetwork,
    examples: int,
    steps: int,
) -> None:
    dims = [network.input_size, network.hidden_size, network.output_size]
    print("=== Backprop playground run ===")
    print(f"Dataset       : {dataset_name} ({examples} examples)")
    print(f"Dimensions    : {dims}")
    print(f"Task          : {network.task_type.value}")
    print(f"Learning rate : {network.learning_rate}")
    print(f"Steps         : {steps}")
    print(f"Parameters    : {network.parameter_count()}")
    print("===============================")


__all__ = ["build_network", "load_preset", "presets", "read_config_file", "run_pipeline"]
