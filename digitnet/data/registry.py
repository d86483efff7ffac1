"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, MutableMapping, Sequence

from ..core.types import Sample


@dataclass(frozen=True)
class DatasetSpec:
    """Labelled samples plus the structural information a network needs.

    Attributes
    ----------
    input_size, output_size:
        Lengths of every sample's ``inputs`` and ``targets``.
    num_classes:
        Number of discrete labels, or ``None`` for pure regression sets.
    provenance:
        Where the data came from (download, cache or offline fixture) so runs
        can be reproduced.
    """

    name: str
    train: Sequence[Sample]
    test: Sequence[Sample]
    input_size: int
    output_size: int
    num_classes: int | None = None
    provenance: Dict[str, Any] = field(default_factory=dict)

    @property
    def splits(self) -> Dict[str, int]:
        return {"train": len(self.train), "test": len(self.test)}


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("mnist")
        def make_mnist(**kwargs):
            ...

    or directly::

        register_dataset("mnist", make_mnist)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(
    dataset: str,
    /,
    *,
    offline: bool | None = None,
    cache_dir: str | Path | None = None,
    **options: Any,
) -> DatasetSpec:
    """Return the :class:`DatasetSpec` for ``dataset``."""

    if dataset not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset {dataset!r}. Available datasets: {available}")

    factory = _REGISTRY[dataset]
    spec = factory(offline=offline, cache_dir=cache_dir, **options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if spec.input_size < 1 or spec.output_size < 1:
        raise ValueError(f"Dataset {spec.name!r} has invalid sizes")
    if not spec.train:
        raise ValueError(f"Dataset {spec.name!r} has an empty train split")
    for split, samples in (("train", spec.train), ("test", spec.test)):
        for index, sample in enumerate(samples):
            if sample.inputs.size != spec.input_size or sample.targets.size != spec.output_size:
                raise ValueError(
                    f"Dataset {spec.name!r} {split} sample {index} does not match "
                    f"({spec.input_size}, {spec.output_size})"
                )


__all__ = ["DatasetSpec", "available_datasets", "get_dataset", "register_dataset"]
