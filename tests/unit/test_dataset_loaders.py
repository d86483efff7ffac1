import hashlib

import numpy as np
import pytest

from digitnet.data import cache, get_dataset, register_dataset
from digitnet.data.logic import truth_table
from digitnet.data.registry import DatasetSpec, available_datasets
from digitnet.data.utils import one_hot, scale_pixels, take_per_class, to_samples


@pytest.fixture(autouse=True)
def _isolated_cache(tmp_path, monkeypatch):
    monkeypatch.setenv("DIGITNET_CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("DIGITNET_DATA_OFFLINE", "1")


def test_builtin_datasets_registered():
    assert {"logic", "mnist"} <= set(available_datasets())


def test_unknown_dataset():
    with pytest.raises(KeyError):
        get_dataset("nope")


def test_mnist_offline_fixture():
    spec = get_dataset("mnist", offline=True)
    assert spec.input_size == 784 and spec.output_size == 10
    assert spec.splits == {"train": 200, "test": 50}
    assert spec.provenance["mode"] == "offline"
    sample = spec.train[0]
    assert sample.inputs.shape == (784,)
    assert sample.inputs.min() >= 0.0 and sample.inputs.max() <= 1.0
    assert sample.targets.sum() == 1.0


def test_mnist_fixture_is_deterministic():
    first = get_dataset("mnist", offline=True)
    second = get_dataset("mnist", offline=True)
    assert first.provenance["checksum"] == second.provenance["checksum"]
    np.testing.assert_array_equal(first.test[7].inputs, second.test[7].inputs)


def test_mnist_max_items_limits_training_split():
    spec = get_dataset("mnist", offline=True, max_items=30, test_items=10)
    assert spec.splits == {"train": 30, "test": 10}
    assert spec.provenance["max_items"] == 30


def test_offline_env_default(monkeypatch):
    monkeypatch.setenv("DIGITNET_DATA_OFFLINE", "1")
    assert cache.offline_default() is True
    monkeypatch.setenv("DIGITNET_DATA_OFFLINE", "0")
    assert cache.offline_default() is False


def test_logic_gates():
    inputs, targets = truth_table("XOR")
    assert inputs.shape == (4, 2)
    np.testing.assert_array_equal(targets.reshape(-1), [0, 1, 1, 0])
    spec = get_dataset("logic", gate="or")
    assert (spec.input_size, spec.output_size, spec.num_classes) == (2, 1, 2)
    assert len(spec.train) == len(spec.test) == 4
    with pytest.raises(KeyError):
        truth_table("nand")


def test_register_custom_dataset():
    @register_dataset("unit-constant")
    def _make(**_):
        samples = to_samples(np.ones((3, 2)), np.zeros((3, 1)))
        return DatasetSpec("unit-constant", samples, samples, input_size=2, output_size=1)

    spec = get_dataset("unit-constant")
    assert spec.splits["train"] == 3


def test_registry_validates_sample_sizes():
    register_dataset(
        "unit-broken",
        lambda **_: DatasetSpec(
            "unit-broken", to_samples(np.ones((2, 3)), np.ones((2, 1))), [], 2, 1
        ),
    )
    with pytest.raises(ValueError):
        get_dataset("unit-broken")


def test_utils():
    np.testing.assert_array_equal(one_hot([2, 0], 3), [[0, 0, 1], [1, 0, 0]])
    flat = scale_pixels(np.full((2, 2, 2), 255, dtype=np.uint8))
    assert flat.shape == (2, 4) and flat.max() == 1.0
    samples = to_samples(np.eye(4), one_hot([0, 1, 0, 0], 2))
    assert len(take_per_class(samples, 2)) == 3
    with pytest.raises(ValueError):
        to_samples(np.ones((2, 1)), np.ones((3, 1)))


def test_fetch_offline_requires_fixture(tmp_path):
    with pytest.raises(cache.CacheError):
        cache.fetch("thing", "http://example.invalid/thing", offline=True, cache_dir=tmp_path)


def test_fetch_redownloads_on_bad_checksum(tmp_path, monkeypatch):
    good = b"good-bytes"
    target = tmp_path / "thing.bin"
    target.write_bytes(b"stale")
    calls = []

    def _download(url, path):
        calls.append(url)
        path.write_bytes(good)
        return path

    monkeypatch.setattr(cache, "_download", _download)
    path, record = cache.fetch(
        "thing",
        "http://example.invalid/thing.bin",
        checksum=hashlib.sha256(good).hexdigest(),
        offline=False,
        cache_dir=tmp_path,
    )
    assert calls == ["http://example.invalid/thing.bin"]
    assert record["mode"] == "download"
    assert path.read_bytes() == good


def test_fetch_falls_back_to_offline_fixture(tmp_path, monkeypatch):
    def _download(url, path):
        raise OSError("no network")

    monkeypatch.setattr(cache, "_download", _download)
    monkeypatch.setattr(cache.time, "sleep", lambda _: None)
    path, record = cache.fetch(
        "thing",
        "http://example.invalid/thing.bin",
        offline=False,
        offline_path=tmp_path / "fixture.bin",
        offline_builder=lambda p: p.write_bytes(b"fixture"),
        cache_dir=tmp_path,
    )
    assert record["mode"] == "offline-fallback"
    assert path.read_bytes() == b"fixture"
