import json
from pathlib import Path

import pytest

from digitnet.persistence import deserialize
from digitnet.training import pipelines


@pytest.fixture(autouse=True)
def _offline_data(tmp_path, monkeypatch):
    monkeypatch.setenv("DIGITNET_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("DIGITNET_DATA_OFFLINE", "1")


def _logic_config(run_dir, **train):
    config = {
        "data": {"name": "logic", "options": {"gate": "and"}},
        "model": {"hidden": 3, "learning_rate": 0.5},
        "train": {"epochs": 20, "seed": 5, "run_dir": str(run_dir), "enable_plots": False},
        "offline": True,
    }
    config["train"].update(train)
    return config


def test_pipeline_produces_artifacts(tmp_path):
    result = pipelines.run_pipeline(_logic_config(tmp_path / "run"))
    run_dir = tmp_path / "run"

    assert result.epochs == 20
    records = [json.loads(line) for line in Path(result.metrics_path).read_text().splitlines()]
    assert [r["epoch"] for r in records] == list(range(1, 21))
    assert all(r["seed"] == 5 and "loss" in r for r in records)
    assert (run_dir / "metrics_train.csv").read_text().startswith("epoch,")

    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["config"]["train"]["seed"] == 5
    assert manifest["dataset"]["gate"] == "and"
    assert manifest["outputs"]["epochs"] == 20

    evaluation = json.loads(Path(result.evaluation_path).read_text())
    assert evaluation["total"] == 4
    assert evaluation["accuracy"] == pytest.approx(result.accuracy)
    assert json.loads((run_dir / "config.json").read_text())["model"]["hidden"] == 3

    network = deserialize(result.model_path)
    assert (network.input_size, network.hidden_size, network.output_size) == (2, 3, 1)


def test_pipeline_is_deterministic_for_a_seed(tmp_path):
    first = pipelines.run_pipeline(_logic_config(tmp_path / "a", shuffle=True))
    second = pipelines.run_pipeline(_logic_config(tmp_path / "b", shuffle=True))
    assert Path(first.model_path).read_text() == Path(second.model_path).read_text()


def test_pipeline_plot_written_when_enabled(tmp_path):
    pipelines.run_pipeline(_logic_config(tmp_path / "plot", epochs=3, enable_plots=True))
    assert (tmp_path / "plot" / "loss.png").exists()


def test_adaptive_mnist_run(tmp_path):
    config = {
        "data": {"name": "mnist", "options": {"max_items": 30, "test_items": 10}},
        "model": {"hidden": 8, "adaptive_step": True, "clamp_steps": True},
        "train": {"epochs": 2, "seed": 1, "run_dir": str(tmp_path / "mnist")},
        "offline": True,
    }
    result = pipelines.run_pipeline(config)
    assert result.epochs == 2
    assert json.loads(Path(result.evaluation_path).read_text())["total"] == 10
    manifest = json.loads(Path(result.manifest_path).read_text())
    assert manifest["dataset"]["mode"] == "offline"


def test_presets_are_available():
    names = set(pipelines.presets())
    assert {"and-gate", "xor-momentum", "mnist-sgd", "mnist-rprop", "or-gate"} <= names
    for config in pipelines.presets().values():
        assert {"data", "model", "train"} <= set(config)


def test_load_preset_returns_copies():
    preset = pipelines.load_preset("and-gate")
    preset["train"]["epochs"] = 1
    assert pipelines.load_preset("and-gate")["train"]["epochs"] != 1
    assert pipelines.load_preset("or-gate")["data"]["options"]["gate"] == "or"
    with pytest.raises(KeyError):
        pipelines.load_preset("missing")


def test_build_network_config_ignores_scalars_in_adaptive_mode():
    config = pipelines.build_network_config(
        {"hidden": 4, "adaptive_step": True, "learning_rate": 0.1}, 2, 1, seed=3
    )
    assert config.use_adaptive_step
    assert config.learning_rate is None
    assert (config.input_size, config.hidden_size, config.output_size) == (2, 4, 1)
