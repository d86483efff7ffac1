"""Command line entry point for digitnet training runs."""

from __future__ import annotations

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Iterable

from digitnet.data import get_dataset
from digitnet.logging_utils import configure_logging
from digitnet.persistence import deserialize
from digitnet.training import pipelines
from digitnet.training.metrics import evaluate

logger = logging.getLogger("digitnet.cli")


def _format_result(result: pipelines.PipelineResult) -> str:
    payload = {
        "epochs": result.epochs,
        "metrics": result.metrics_path,
        "manifest": result.manifest_path,
        "model": result.model_path,
        "evaluation": result.evaluation_path,
        "accuracy": result.accuracy,
    }
    return json.dumps(payload, sort_keys=True)


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    preset_names = sorted(pipelines.presets().keys())
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--preset",
        choices=preset_names,
        default="and-gate",
        help="Preset configuration to execute",
    )
    parser.add_argument("--config", type=Path, help="Optional JSON/YAML config override")
    parser.add_argument("--epochs", type=int, help="Override the number of training epochs")
    parser.add_argument("--seed", type=int, help="Seed used for weight init and shuffling")
    parser.add_argument(
        "--adaptive-step",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Toggle the adaptive per-weight step controller",
    )
    parser.add_argument("--enable-plots", action="store_true", help="Write a loss curve plot")
    parser.add_argument(
        "--offline",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Force offline dataset usage",
    )
    parser.add_argument(
        "--evaluate",
        type=Path,
        metavar="MODEL",
        help="Evaluate a saved model on the configured dataset instead of training",
    )
    parser.add_argument(
        "--list-presets", action="store_true", help="List available presets and exit"
    )
    parser.add_argument("--dump-config", type=Path, help="Dump the resolved config to a JSON file")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    return parser.parse_args(argv)


def _merge(base: dict, override: dict) -> dict:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            base[key] = _merge(dict(base[key]), value)
        else:
            base[key] = value
    return base


def resolve_config(args: argparse.Namespace) -> dict:
    config = json.loads(json.dumps(pipelines.load_preset(args.preset)))

    if args.config:
        override = dict(pipelines.read_config_file(args.config))
        if {"data", "model", "train"} <= set(override.keys()):
            config = json.loads(json.dumps(override))
        else:
            config = _merge(config, override)

    train_cfg = config.setdefault("train", {})
    if args.epochs is not None:
        train_cfg["epochs"] = int(args.epochs)
    if args.seed is not None:
        train_cfg["seed"] = int(args.seed)
    if args.enable_plots:
        train_cfg["enable_plots"] = True
    if args.adaptive_step is not None:
        config.setdefault("model", {})["adaptive_step"] = bool(args.adaptive_step)
    config["offline"] = bool(args.offline)
    return config


def _evaluate_saved(model_path: Path, config: dict) -> str:
    network = deserialize(model_path)
    data_cfg = config["data"]
    dataset = get_dataset(
        data_cfg["name"],
        offline=config.get("offline"),
        **dict(data_cfg.get("options", {})),
    )
    report = evaluate(network, dataset.test or dataset.train, num_classes=dataset.num_classes)
    payload = {
        "model": str(model_path),
        "dataset": dataset.name,
        "total": report.total,
        "correct": report.correct,
        "accuracy": report.accuracy,
        "loss": report.loss,
    }
    return json.dumps(payload, sort_keys=True)


def main(argv: Iterable[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.list_presets:
        for name in sorted(pipelines.presets().keys()):
            print(name)
        raise SystemExit(0)

    config = resolve_config(args)
    os.environ["DIGITNET_DATA_OFFLINE"] = "1" if args.offline else "0"

    if args.dump_config:
        args.dump_config.parent.mkdir(parents=True, exist_ok=True)
        args.dump_config.write_text(json.dumps(config, indent=2))

    if args.evaluate:
        logger.info("Evaluating %s", args.evaluate)
        print(_evaluate_saved(args.evaluate, config))
        return

    result = pipelines.run_pipeline(config)
    print(_format_result(result))


if __name__ == "__main__":
    main()
