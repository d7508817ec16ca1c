from __future__ import annotations

import json
from pathlib import Path

import pytest

from backprop_playground.core.errors import DimensionMismatchError
from backprop_playground.training import pipelines


def _config(tmp_path, name="xor", steps=20):
    config = json.loads(json.dumps(pipelines.load_preset(name)))
    config["train"]["steps"] = steps
    config["train"]["run_dir"] = str(tmp_path / "run")
    return config


def test_builtin_presets_cover_every_dataset():
    names = set(pipelines.presets())
    assert {"xor", "circle", "linear_separable", "moons", "spiral", "linear_regression"} <= names
    assert "xor-quick" in names
    regression = pipelines.load_preset("linear_regression")
    assert regression["model"]["task_type"] == "regression"
    assert regression["model"]["hidden_size"] == 2


def test_load_preset_returns_independent_copies():
    first = pipelines.load_preset("xor")
    first["train"]["steps"] = 1
    assert pipelines.load_preset("xor")["train"]["steps"] == 4000
    with pytest.raises(KeyError):
        pipelines.load_preset("does-not-exist")


def test_file_preset_is_loaded_from_yaml():
    config = pipelines.load_preset("xor-quick")
    assert config["model"]["strict"] is True
    assert config["train"]["track"] == {"tensor": "weights2", "index": [0, 0]}


def test_read_config_file_formats(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"train": {"steps": 3}}))
    assert pipelines.read_config_file(path) == {"train": {"steps": 3}}
    toml = tmp_path / "cfg.toml"
    toml.write_text("")
    with pytest.raises(ValueError):
        pipelines.read_config_file(toml)
    listing = tmp_path / "list.json"
    listing.write_text("[1, 2]")
    with pytest.raises(TypeError):
        pipelines.read_config_file(listing)


def test_pipeline_writes_artifacts(tmp_path, capsys):
    config = _config(tmp_path)
    result = pipelines.run_pipeline(config)
    run_dir = tmp_path / "run"

    assert result.steps == 20
    assert "Backprop playground run" in capsys.readouterr().out
    for name in (
        "metrics.jsonl",
        "metrics.csv",
        "manifest.json",
        "summary.json",
        "config.json",
        "last_step.json",
        "landscape.json",
    ):
        assert (run_dir / name).exists(), name

    lines = Path(result.metrics_path).read_text().splitlines()
    assert len(lines) == 20
    assert set(json.loads(lines[0])) >= {"step", "loss", "weight_value", "weight_gradient"}

    last_step = json.loads((run_dir / "last_step.json").read_text())
    assert last_step["step"] == 20
    assert set(last_step) == {"step", "forward", "backward", "after"}

    landscape = json.loads((run_dir / "landscape.json").read_text())
    assert len(landscape["points"]) == 50
    assert len(landscape["trajectory"]) == 20

    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["dataset"]["type"] == "xor"
    assert manifest["network"]["parameter_count"] == 2 * 6 + 6 + 6 + 1

    summary = json.loads(Path(result.summary_path).read_text())
    assert summary["final"]["loss"] == pytest.approx(result.final_loss)
    assert "accuracy" in summary["final"]


def test_pipeline_log_every_thins_metrics(tmp_path):
    config = _config(tmp_path, name="linear_regression", steps=30)
    config["train"]["log_every"] = 10
    result = pipelines.run_pipeline(config)
    steps = [json.loads(line)["step"] for line in Path(result.metrics_path).read_text().splitlines()]
    assert steps == [10, 20, 30]


def test_pipeline_with_plots(tmp_path):
    pytest.importorskip("matplotlib")
    config = _config(tmp_path, steps=5)
    config["train"]["enable_plots"] = True
    pipelines.run_pipeline(config)
    assert (tmp_path / "run" / "loss.png").exists()
    assert (tmp_path / "run" / "landscape.png").exists()


def test_model_section_must_match_dataset(tmp_path):
    config = _config(tmp_path)
    config["model"]["input_size"] = 3
    with pytest.raises(ValueError, match="input_size"):
        pipelines.run_pipeline(config)

    config = _config(tmp_path)
    config["model"]["task_type"] = "regression"
    with pytest.raises(ValueError, match="task_type"):
        pipelines.run_pipeline(config)


def test_strict_network_from_config():
    spec = pipelines.registry.get_dataset("xor").data_spec
    net = pipelines.build_network({"strict": True, "hidden_size": 3, "seed": 1}, spec)
    assert net.hidden_size == 3
    with pytest.raises(DimensionMismatchError):
        net.predict([1.0])
