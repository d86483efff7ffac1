"""MNIST handwritten digits backed by the cache manager."""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from .cache import fetch, resolve_cache_dir
from .registry import DatasetSpec, register_dataset
from .utils import one_hot, scale_pixels, to_samples

logger = logging.getLogger(__name__)

_URL = "https://storage.googleapis.com/tensorflow/tf-keras-datasets/mnist.npz"
_CHECKSUM = "731c5ac602752760c8e48fbffcf8c3b850d9dc2a2aedcf2cc48468fc17b673d1"

IMAGE_SIDE = 28
NUM_CLASSES = 10
TRAIN_PER_DIGIT = 20
TEST_PER_DIGIT = 5


def _fixture_digit(digit: int, variant: int) -> np.ndarray:
    """Draw a deterministic 28x28 glyph whose bars encode ``digit``."""

    image = np.zeros((IMAGE_SIDE, IMAGE_SIDE), dtype=np.uint8)
    shift = variant % 3
    row = 2 + 2 * digit + shift
    col = 3 + 2 * ((digit * 3) % NUM_CLASSES) + shift
    image[row : row + 3, 4:24] = 255
    image[4:24, col : col + 2] = 200
    image[IMAGE_SIDE - 3 - shift, : 2 + digit * 2] = 128
    return image


def _build_offline_fixture(path: Path) -> None:
    """Build a deterministic MNIST-like fixture for offline use.

    Every image is generated procedurally from integer arithmetic, so the
    archive is identical across platforms and NumPy versions.
    """

    def _split(per_digit: int, offset: int) -> tuple[np.ndarray, np.ndarray]:
        images, labels = [], []
        for variant in range(per_digit):
            for digit in range(NUM_CLASSES):
                images.append(_fixture_digit(digit, variant + offset))
                labels.append(digit)
        return np.stack(images), np.asarray(labels, dtype=np.uint8)

    x_train, y_train = _split(TRAIN_PER_DIGIT, 0)
    x_test, y_test = _split(TEST_PER_DIGIT, 1)
    np.savez(path, x_train=x_train, y_train=y_train, x_test=x_test, y_test=y_test)


def _read(data, key: str) -> np.ndarray:
    # Keras archives use lower-case names; older fixtures used upper-case X.
    for candidate in (key, key.replace("x_", "X_")):
        if candidate in data:
            return np.asarray(data[candidate])
    raise KeyError(f"MNIST archive is missing {key!r}")


def _factory(
    max_items: int | None = None,
    test_items: int | None = None,
    *,
    offline: bool | None = None,
    cache_dir: str | Path | None = None,
    **_: object,
) -> DatasetSpec:
    base_cache = resolve_cache_dir(cache_dir)
    path, provenance = fetch(
        name="mnist",
        url=_URL,
        checksum=_CHECKSUM,
        filename="mnist.npz",
        offline_path=base_cache / "offline" / "mnist_fixture.npz",
        offline_builder=_build_offline_fixture,
        offline=offline,
        cache_dir=base_cache,
    )
    with np.load(path) as data:
        x_train, y_train = _read(data, "x_train"), _read(data, "y_train")
        x_test, y_test = _read(data, "x_test"), _read(data, "y_test")

    if max_items is not None:
        x_train, y_train = x_train[:max_items], y_train[:max_items]
    if test_items is not None:
        x_test, y_test = x_test[:test_items], y_test[:test_items]

    train = to_samples(scale_pixels(x_train), one_hot(y_train, NUM_CLASSES))
    test = to_samples(scale_pixels(x_test), one_hot(y_test, NUM_CLASSES))
    logger.info(
        "Loaded MNIST (%s): %d train / %d test samples", provenance["mode"], len(train), len(test)
    )

    provenance = dict(provenance)
    provenance.update({"max_items": max_items, "test_items": test_items})
    return DatasetSpec(
        name="mnist",
        train=train,
        test=test,
        input_size=IMAGE_SIDE * IMAGE_SIDE,
        output_size=NUM_CLASSES,
        num_classes=NUM_CLASSES,
        provenance=provenance,
    )


register_dataset("mnist", _factory)
