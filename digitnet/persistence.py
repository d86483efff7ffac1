"""
persistence.py
~~~~~~~~~~~~~~

JSON model codec for trained networks.

The persisted document carries the two weight matrices and the learning
rate only::

    {"IH": [[...], ...], "HO": [[...], ...], "LR": 0.3}

Layer sizes are recovered from the matrix shapes.  Momentum, adaptive-step
state and custom activation strategies are not stored; a deserialized
network always comes back with the defaults.
"""

from __future__ import annotations

import json
import logging
import math
import numbers
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Mapping

import numpy as np

from .core.activations import Sigmoid
from .core.errors import CorruptModelError, NumericDegeneracyError, ShapeError
from .core.network import Network
from .core.types import ModelState

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = ".json"


class ModelEncoder(json.JSONEncoder):
    """JSON encoder that understands numpy arrays and scalars."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, np.ndarray):
            return obj.tolist()
        if isinstance(obj, np.generic):
            return obj.item()
        return super().default(obj)


def with_extension(path: str | Path, extension: str = DEFAULT_EXTENSION) -> Path:
    """Return ``path`` with ``extension`` appended unless it already ends with it."""

    path = Path(path)
    if path.name.endswith(extension):
        return path
    return path.with_name(path.name + extension)


def encode_model(network: Network) -> Dict[str, Any]:
    """Return the persisted representation of ``network``.

    Matrices stay numpy arrays; :class:`ModelEncoder` converts them when the
    document is dumped.
    """

    model = network.get_model()
    return {
        "IH": model.weights_ih,
        "HO": model.weights_ho,
        "LR": float(model.learning_rate),
    }


def _matrix(document: Mapping[str, Any], key: str) -> np.ndarray:
    if key not in document:
        raise CorruptModelError(f"model document is missing {key!r}")
    try:
        matrix = np.asarray(document[key], dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise CorruptModelError(f"{key} is not a numeric matrix: {exc}") from exc
    if matrix.ndim != 2 or 0 in matrix.shape:
        raise CorruptModelError(f"{key} must be a non-empty 2-D matrix, got shape {matrix.shape}")
    if not np.isfinite(matrix).all():
        raise CorruptModelError(f"{key} contains NaN or Inf")
    return matrix


def decode_model(document: Any) -> Network:
    """Rebuild an inference-ready :class:`Network` from a decoded document."""

    if not isinstance(document, Mapping):
        raise CorruptModelError(
            f"model document must be an object, got {type(document).__name__}"
        )
    weights_ih = _matrix(document, "IH")
    weights_ho = _matrix(document, "HO")
    if weights_ih.shape[0] != weights_ho.shape[1]:
        raise CorruptModelError(
            f"hidden size mismatch: IH has {weights_ih.shape[0]} rows "
            f"but HO has {weights_ho.shape[1]} columns"
        )
    learning_rate = document.get("LR")
    if (
        isinstance(learning_rate, bool)
        or not isinstance(learning_rate, numbers.Real)
        or not math.isfinite(learning_rate)
    ):
        raise CorruptModelError(f"LR must be a finite number, got {learning_rate!r}")

    model = ModelState(
        weights_ih=weights_ih,
        weights_ho=weights_ho,
        learning_rate=float(learning_rate),
        activation=Sigmoid(),
    )
    try:
        return Network.from_existing_state(model)
    except (ShapeError, NumericDegeneracyError) as exc:
        raise CorruptModelError(str(exc)) from exc


def serialize(network: Network, path: str | Path) -> Path:
    """Write ``network`` to ``path`` atomically and return the final path.

    The document is written to a temporary file in the target directory and
    moved into place, so readers never observe a partially written model.
    """

    target = with_extension(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(encode_model(network), cls=ModelEncoder)

    handle = tempfile.NamedTemporaryFile(
        "w",
        encoding="utf-8",
        dir=target.parent,
        prefix=f".{target.name}.",
        suffix=".tmp",
        delete=False,
    )
    try:
        with handle:
            handle.write(payload)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(handle.name, target)
    except BaseException:
        Path(handle.name).unlink(missing_ok=True)
        raise

    logger.info(
        "Saved model %s-%s-%s to %s",
        network.input_size,
        network.hidden_size,
        network.output_size,
        target,
    )
    return target


def deserialize(path: str | Path) -> Network:
    """Load a network previously written by :func:`serialize`."""

    source = with_extension(path)
    text = source.read_text(encoding="utf-8")
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CorruptModelError(f"{source} is not valid JSON: {exc}") from exc
    network = decode_model(document)
    logger.info("Loaded model %r from %s", network, source)
    return network


__all__ = [
    "DEFAULT_EXTENSION",
    "ModelEncoder",
    "decode_model",
    "deserialize",
    "encode_model",
    "serialize",
    "with_extension",
]
