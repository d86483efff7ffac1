"""Pipeline assembly: presets, training runs and run artifacts."""

from __future__ import annotations

import json
import logging
import time
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping

from ..core.activations import get_activation
from ..core.config import NetworkConfig
from ..core.network import Network
from ..data import get_dataset
from ..persistence import serialize
from ..reporting.artifacts import write_manifest
from ..reporting.metrics import CsvSink, JsonlSink
from ..reporting.plots import PlotAdapter
from .metrics import evaluate
from .trainer import Trainer

logger = logging.getLogger(__name__)

_PRESETS: Dict[str, Mapping[str, object]] = {
    "and-gate": {
        "data": {"name": "logic", "options": {"gate": "and"}},
        "model": {"hidden": 4, "learning_rate": 0.3},
        "train": {
            "epochs": 2000,
            "seed": 7,
            "run_dir": "runs/and-gate",
            "enable_plots": False,
        },
    },
    "xor-momentum": {
        "data": {"name": "logic", "options": {"gate": "xor"}},
        "model": {"hidden": 4, "learning_rate": 0.5, "momentum": 0.3},
        "train": {
            "epochs": 4000,
            "seed": 3,
            "run_dir": "runs/xor-momentum",
            "enable_plots": False,
        },
    },
    "mnist-sgd": {
        "data": {"name": "mnist", "options": {"max_items": 1000}},
        "model": {"hidden": 100, "learning_rate": 0.3},
        "train": {
            "epochs": 5,
            "seed": 1,
            "run_dir": "runs/mnist-sgd",
            "enable_plots": False,
        },
    },
    "mnist-rprop": {
        "data": {"name": "mnist", "options": {"max_items": 1000}},
        "model": {"hidden": 100, "adaptive_step": True, "clamp_steps": True},
        "train": {
            "epochs": 5,
            "seed": 1,
            "run_dir": "runs/mnist-rprop",
            "enable_plots": False,
        },
    },
}

_PRESET_DIR = Path(__file__).resolve().parents[2] / "configs" / "presets"
_FILE_PRESETS_CACHE: Dict[str, Mapping[str, object]] | None = None


@dataclass(frozen=True)
class PipelineResult:
    """Paths and headline numbers produced by :func:`run_pipeline`."""

    epochs: int
    metrics_path: str
    manifest_path: str
    model_path: str
    evaluation_path: str
    accuracy: float


def read_config_file(path: Path) -> Mapping[str, object]:
    text = path.read_text()
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        import yaml

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
        found: Dict[str, Mapping[str, object]] = {}
        if _PRESET_DIR.exists():
            for file in sorted(_PRESET_DIR.iterdir()):
                if file.suffix.lower() not in {".yaml", ".yml", ".json"}:
                    continue
                data = read_config_file(file)
                missing = {"data", "model", "train"} - set(data)
                if missing:
                    raise KeyError(
                        f"Preset {file.name} is missing required sections: "
                        f"{', '.join(sorted(missing))}"
                    )
                found[file.stem] = json.loads(json.dumps(data))
        _FILE_PRESETS_CACHE = found
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


def build_network_config(
    model_cfg: Mapping[str, object], input_size: int, output_size: int, seed: int | None
) -> NetworkConfig:
    """Translate the ``model`` section of a run config into a :class:`NetworkConfig`."""

    adaptive = bool(model_cfg.get("adaptive_step", False))
    options = {}
    if not adaptive:
        for key in ("learning_rate", "momentum"):
            if model_cfg.get(key) is not None:
                options[key] = float(model_cfg[key])
    for key in ("min_step", "max_step", "initial_step"):
        if key in model_cfg:
            options[key] = float(model_cfg[key])
    return NetworkConfig(
        input_size=int(model_cfg.get("input_size", input_size)),
        hidden_size=int(model_cfg.get("hidden", 16)),
        output_size=int(model_cfg.get("output_size", output_size)),
        use_adaptive_step=adaptive,
        clamp_steps=bool(model_cfg.get("clamp_steps", False)),
        check_finite=bool(model_cfg.get("check_finite", True)),
        seed=seed,
        **options,
    )


def run_pipeline(config: Mapping[str, object]) -> PipelineResult:
    data_cfg = dict(config["data"])
    model_cfg = dict(config["model"])
    train_cfg = dict(config["train"])

    offline = config.get("offline")
    dataset = get_dataset(
        str(data_cfg["name"]),
        offline=None if offline is None else bool(offline),
        cache_dir=train_cfg.get("cache_dir"),
        **dict(data_cfg.get("options", {})),
    )

    seed = train_cfg.get("seed")
    seed = int(seed) if seed is not None else None
    epochs = int(train_cfg.get("epochs", 1))
    net_config = build_network_config(model_cfg, dataset.input_size, dataset.output_size, seed)

    network = Network.from_config(net_config)
    activation = model_cfg.get("activation")
    if activation is not None:
        network.activation = get_activation(str(activation))

    run_dir = _resolve_run_dir(train_cfg, dataset.name)
    run_dir.mkdir(parents=True, exist_ok=True)
    _log_startup_summary(dataset.name, network, epochs, run_dir)

    train_jsonl = JsonlSink(run_dir / "metrics_train.jsonl", seed=seed)
    train_csv = CsvSink(run_dir / "metrics_train.csv")
    plots = PlotAdapter(run_dir, enable_plots=bool(train_cfg.get("enable_plots", False)))
    trainer = Trainer(
        network,
        callbacks=[train_jsonl, train_csv, plots],
        shuffle=bool(train_cfg.get("shuffle", False)),
        seed=seed,
    )
    result = trainer.run(dataset.train, epochs)

    eval_samples = dataset.test or dataset.train
    report = evaluate(network, eval_samples, num_classes=dataset.num_classes)
    evaluation_path = run_dir / "evaluation.json"
    evaluation_path.write_text(json.dumps(report.to_dict(), indent=2))
    logger.info(
        "Evaluation on %d samples: accuracy=%.4f loss=%.6f",
        report.total,
        report.accuracy,
        report.loss,
    )

    model_path = serialize(network, run_dir / "model")
    safe_config = json.loads(json.dumps(config, default=str))
    (run_dir / "config.json").write_text(json.dumps(safe_config, indent=2))
    manifest = write_manifest(
        run_dir / "manifest.json",
        config=safe_config,
        dataset_provenance=dataset.provenance,
        outputs={
            "epochs": result.epochs,
            "stopped": result.stopped,
            "final_loss": result.final_loss,
            "accuracy": report.accuracy,
            "model": str(model_path),
            "plot": str(plots.plot_path) if plots.enable_plots else None,
        },
    )

    return PipelineResult(
        epochs=result.epochs,
        metrics_path=str(train_jsonl.path),
        manifest_path=manifest,
        model_path=str(model_path),
        evaluation_path=str(evaluation_path),
        accuracy=report.accuracy,
    )


def _resolve_run_dir(train_cfg: Mapping[str, object], dataset: str) -> Path:
    if "run_dir" in train_cfg:
        return Path(str(train_cfg["run_dir"]))
    timestamp = time.strftime("%Y%m%d-%H%M%S")
    return Path("runs") / timestamp / dataset


def _log_startup_summary(dataset_name: str, network: Network, epochs: int, run_dir: Path) -> None:
    params = network.weights_ih.size + network.weights_ho.size
    logger.info("=== digitnet run ===")
    logger.info("Dataset       : %s", dataset_name)
    logger.info("Network       : %r", network)
    logger.info("Activation    : %s", getattr(network.activation, "name", network.activation))
    logger.info("Epochs        : %d", epochs)
    logger.info("Parameters    : %d", params)
    logger.info("Run directory : %s", run_dir)


__all__ = [
    "PipelineResult",
    "build_network_config",
    "load_preset",
    "presets",
    "read_config_file",
    "run_pipeline",
]
