from pathlib import Path

from backprop_playground.training import pipelines


def test_summary_outputs_are_deterministic(tmp_path):
    config = {
        "data": {"name": "circle", "options": {"n_samples": 16, "seed": 123}},
        "model": {"hidden_size": 4, "learning_rate": 0.1, "seed": 55},
        "train": {
            "steps": 48,
            "log_every": 4,
            "run_dir": str(tmp_path / "run_a"),
            "enable_plots": False,
        },
    }

    first = pipelines.run_pipeline(config)
    summary_a = Path(first.summary_path).read_bytes()
    metrics_a = Path(first.metrics_path).read_bytes()
    last_a = Path(first.last_step_path).read_bytes()

    config["train"]["run_dir"] = str(tmp_path / "run_b")
    second = pipelines.run_pipeline(config)
    summary_b = Path(second.summary_path).read_bytes()
    metrics_b = Path(second.metrics_path).read_bytes()
    last_b = Path(second.last_step_path).read_bytes()

    assert metrics_a == metrics_b
    assert summary_a == summary_b
    assert last_a == last_b
    assert first.final_loss == second.final_loss
