import csv
import json
import logging

import pytest

from digitnet.logging_utils import ROOT_LOGGER, configure_logging
from digitnet.reporting import CsvSink, JsonlSink, PlotAdapter, write_manifest


def test_jsonl_sink_records_epochs(tmp_path):
    sink = JsonlSink(tmp_path / "m.jsonl", seed=3, sha="abc")
    sink.on_epoch(1, {"loss": 0.5, "note": "skip"})
    sink(2, {"loss": 0.25})
    records = [json.loads(line) for line in (tmp_path / "m.jsonl").read_text().splitlines()]
    assert records == [
        {"epoch": 1, "seed": 3, "sha": "abc", "loss": 0.5},
        {"epoch": 2, "seed": 3, "sha": "abc", "loss": 0.25},
    ]


def test_csv_sink_writes_single_header(tmp_path):
    sink = CsvSink(tmp_path / "m.csv")
    sink.on_epoch(1, {"loss": 0.5})
    sink.on_epoch(2, {"loss": 0.4})
    with (tmp_path / "m.csv").open() as handle:
        rows = list(csv.DictReader(handle))
    assert [row["epoch"] for row in rows] == ["1", "2"]


def test_plot_adapter_disabled_writes_nothing(tmp_path):
    adapter = PlotAdapter(tmp_path / "run")
    adapter.on_epoch(1, {"loss": 1.0})
    adapter.close()
    assert not adapter.plot_path.exists()


def test_manifest_contents(tmp_path):
    path = write_manifest(
        tmp_path / "manifest.json",
        config={"train": {"seed": 1}},
        dataset_provenance={"mode": "offline"},
        outputs={"model": tmp_path / "model.json"},
    )
    manifest = json.loads(open(path).read())
    assert manifest["config"]["train"]["seed"] == 1
    assert manifest["dataset"]["mode"] == "offline"
    assert manifest["outputs"]["model"].endswith("model.json")
    assert {"python", "numpy"} <= set(manifest["environment"])


def test_configure_logging_is_idempotent(tmp_path):
    logger = logging.getLogger(ROOT_LOGGER)
    existing = list(logger.handlers)
    try:
        configure_logging("debug", log_file=tmp_path / "run.log")
        configure_logging("INFO", log_file=tmp_path / "run.log")
        added = [h for h in logger.handlers if h not in existing]
        assert logger.level == logging.INFO
        assert sum(isinstance(h, logging.FileHandler) for h in added) == 1
        with pytest.raises(ValueError):
            configure_logging("loud")
    finally:
        for handler in list(logger.handlers):
            if handler not in existing:
                logger.removeHandler(handler)
                handler.close()
