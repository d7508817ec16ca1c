"""Command line entry point for backprop playground training runs."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Iterable

from backprop_playground.data import available_datasets
from backprop_playground.training import pipelines


def _format_result(result) -> str:
    payload = {
        "steps": result.steps,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
        "final_loss": result.final_loss,
    }
    if getattr(result, "summary_path", ""):
        payload["summary"] = result.summary_path
    if getattr(result, "last_step_path", ""):
        payload["last_step"] = result.last_step_path
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="xor",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument(
        "--dataset",
        choices=sorted(available_datasets()),
        help="Override the dataset; network defaults follow the dataset",
    )
    parser.add_argument("--hidden-size", type=int, help="Hidden layer width")
    parser.add_argument("--learning-rate", type=float, help="Gradient-descent step size")
    parser.add_argument("--steps", type=int, help="Number of training steps")
    parser.add_argument("--seed", type=int, help="Seed for dataset generation and weights")
    parser.add_argument(
        "--interval",
        type=float,
        help="Seconds to wait between steps (0 runs as fast as possible)",
    )
    parser.add_argument("--run-dir", type=Path, help="Directory for run artifacts")
    parser.add_argument(
        "--strict",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Fail on dimension mismatches instead of zero-filling",
    )
    parser.add_argument("--enable-plots", action="store_true", help="Write matplotlib figures")
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument(
        "--list-datasets", action="store_true", help="List available datasets and exit"
    )
    parser.add_argument(
        "--dump-config", type=Path, help="Dump the resolved config to a JSON file"
    )
    return parser.parse_args(argv)


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def resolve_config(args: argparse.Namespace) -> dict:
    """Combine the preset, an optional config file and CLI flags."""

    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = dict(pipelines.read_config_file(args.config))
        if pipelines.REQUIRED_SECTIONS <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = _merge(config, override)

    if args.dataset:
        dataset_preset = pipelines.load_preset(args.dataset)
        config["data"] = dataset_preset["data"]
        config["model"] = dict(dataset_preset["model"])
        config["train"].pop("run_dir", None)

    model_cfg = config.setdefault("model", {})
    train_cfg = config.setdefault("train", {})
    if args.hidden_size is not None:
        model_cfg["hidden_size"] = int(args.hidden_size)
    if args.learning_rate is not None:
        model_cfg["learning_rate"] = float(args.learning_rate)
    if args.strict is not None:
        model_cfg["strict"] = bool(args.strict)
    if args.seed is not None:
        model_cfg["seed"] = int(args.seed)
        config.setdefault("data", {}).setdefault("options", {})["seed"] = int(args.seed)
    if args.steps is not None:
        train_cfg["steps"] = int(args.steps)
    if args.interval is not None:
        train_cfg["interval"] = float(args.interval)
    if args.run_dir is not None:
        train_cfg["run_dir"] = str(args.run_dir)
    if args.enable_plots:
        train_cfg["enable_plots"] = True
    return config


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    if args.list_datasets:
        for name in available_datasets():
            print(name)
        raise SystemExit(0)

    config = resolve_config(args)

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    result = pipelines.run_pipeline(config)
    print(_format_result(result))


if __name__ == "__main__":
    main()
