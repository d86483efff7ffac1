import json

import numpy as np
import pytest

from digitnet import persistence
from digitnet.core.activations import Sigmoid
from digitnet.core.errors import CorruptModelError
from digitnet.core.network import Network


def _write(path, payload):
    path.write_text(payload if isinstance(payload, str) else json.dumps(payload))
    return path


def test_serialize_appends_extension_and_writes_document(tmp_path):
    network = Network.from_scalars(3, 2, 4, learning_rate=0.25, seed=0)
    path = persistence.serialize(network, tmp_path / "model")
    assert path == tmp_path / "model.json"

    document = json.loads(path.read_text())
    assert set(document) == {"IH", "HO", "LR"}
    assert np.asarray(document["IH"]).shape == (2, 3)
    assert np.asarray(document["HO"]).shape == (4, 2)
    assert document["LR"] == 0.25


def test_existing_extension_is_kept(tmp_path):
    network = Network.from_scalars(2, 2, 1, seed=0)
    assert persistence.serialize(network, tmp_path / "m.json").name == "m.json"
    assert persistence.with_extension("a/b.json.bak").name == "b.json.bak.json"


def test_round_trip_restores_weights_and_defaults(tmp_path):
    with pytest.warns(UserWarning):
        original = Network.from_scalars(4, 3, 2, momentum=0.9, use_adaptive_step=True, seed=2)
    original.train_step(([0.1, 0.2, 0.3, 0.4], [1.0, 0.0]))
    persistence.serialize(original, tmp_path / "net")

    restored = persistence.deserialize(tmp_path / "net")
    np.testing.assert_array_equal(restored.weights_ih, original.weights_ih)
    np.testing.assert_array_equal(restored.weights_ho, original.weights_ho)
    assert restored.learning_rate == pytest.approx(0.5)
    assert restored.momentum == 0.0
    assert restored.adaptive_state is None
    assert restored.previous_deltas is None
    assert restored.activation == Sigmoid()
    np.testing.assert_allclose(
        restored.query([0.4, 0.3, 0.2, 0.1]), original.query([0.4, 0.3, 0.2, 0.1])
    )


def test_failed_write_keeps_previous_model(tmp_path, monkeypatch):
    first = Network.from_scalars(2, 2, 1, seed=1)
    target = persistence.serialize(first, tmp_path / "model")
    before = target.read_text()

    def _boom(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(persistence.os, "replace", _boom)
    with pytest.raises(OSError):
        persistence.serialize(Network.from_scalars(2, 2, 1, seed=2), target)

    assert target.read_text() == before
    assert [p.name for p in tmp_path.iterdir()] == ["model.json"]


def test_missing_file_propagates(tmp_path):
    with pytest.raises(FileNotFoundError):
        persistence.deserialize(tmp_path / "absent")


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        [1, 2, 3],
        {"HO": [[1.0]], "LR": 0.1},
        {"IH": [[1.0, 2.0]], "HO": [[1.0, 2.0]], "LR": 0.1},
        {"IH": [[1.0]], "HO": [[1.0]], "LR": "fast"},
        {"IH": [[1.0]], "HO": [[1.0]]},
        {"IH": [1.0, 2.0], "HO": [[1.0]], "LR": 0.1},
        {"IH": [["a"]], "HO": [[1.0]], "LR": 0.1},
        {"IH": [], "HO": [[1.0]], "LR": 0.1},
        '{"IH": [[NaN]], "HO": [[1.0]], "LR": 0.1}',
    ],
)
def test_corrupt_documents_are_rejected(tmp_path, payload):
    path = _write(tmp_path / "bad.json", payload)
    with pytest.raises(CorruptModelError):
        persistence.deserialize(path)


def test_decode_infers_sizes_from_shapes():
    network = persistence.decode_model(
        {"IH": [[0.1, 0.2, 0.3]], "HO": [[0.5], [0.6]], "LR": 0.4}
    )
    assert (network.input_size, network.hidden_size, network.output_size) == (3, 1, 2)
    assert network.learning_rate == pytest.approx(0.4)


def test_encoded_model_is_dumped_through_encoder():
    network = Network.from_scalars(2, 3, 1, learning_rate=0.2, seed=4)
    document = persistence.encode_model(network)
    assert isinstance(document["IH"], np.ndarray)
    with pytest.raises(TypeError):
        json.dumps(document)

    decoded = json.loads(json.dumps(document, cls=persistence.ModelEncoder))
    np.testing.assert_array_equal(np.asarray(decoded["IH"]), network.weights_ih)
    assert json.loads(json.dumps({"n": np.int64(3)}, cls=persistence.ModelEncoder)) == {"n": 3}
