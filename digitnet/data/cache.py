"""Offline-first cache management for dataset assets."""

from __future__ import annotations

import hashlib
import logging
import os
import time
from pathlib import Path
from typing import Callable, Iterable, Mapping

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "digitnet"


class CacheError(RuntimeError):
    """Raised when resources cannot be fetched or validated."""


def resolve_cache_dir(cache_dir: str | Path | None = None) -> Path:
    """Resolve the effective cache directory for datasets."""

    base = Path(cache_dir or os.environ.get("DIGITNET_CACHE_DIR") or DEFAULT_CACHE_DIR)
    base.mkdir(parents=True, exist_ok=True)
    return base


def offline_default() -> bool:
    return os.environ.get("DIGITNET_DATA_OFFLINE", "1") == "1"


def _sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(8192), b""):
            digest.update(chunk)
    return digest.hexdigest()


def fetch(
    name: str,
    url: str,
    *,
    checksum: str | None = None,
    mirrors: Iterable[str] | None = None,
    offline_path: Path | None = None,
    offline_builder: Callable[[Path], None] | None = None,
    filename: str | None = None,
    offline: bool | None = None,
    retries: int = 2,
    cache_dir: str | Path | None = None,
) -> tuple[Path, Mapping[str, object]]:
    """Fetch ``url`` into the cache, respecting offline requirements."""

    cache_dir = resolve_cache_dir(cache_dir)
    offline_mode = offline if offline is not None else offline_default()

    if offline_mode:
        if offline_path is None:
            raise CacheError(f"Offline mode requested for {name!r} but no offline_path provided")
        path = _ensure_offline(offline_path, offline_builder)
        return path, _make_record(name, url, path, None, mode="offline")

    target = cache_dir / (filename or Path(url).name)
    if target.exists():
        try:
            return target, _make_record(name, url, target, checksum, mode="cache")
        except CacheError:
            logger.warning("Cached %s failed checksum verification; downloading again", target)
            target.unlink()

    sources = [url, *(mirrors or [])]
    last_error: Exception | None = None
    for source in sources:
        for attempt in range(retries + 1):
            try:
                path = _download(source, target)
                return path, _make_record(name, source, path, checksum, mode="download")
            except Exception as exc:  # pragma: no cover - network dependent
                last_error = exc
                logger.warning(
                    "Download of %s from %s failed (attempt %d/%d): %s",
                    name,
                    source,
                    attempt + 1,
                    retries + 1,
                    exc,
                )
                time.sleep(min(2**attempt, 5))
        target.unlink(missing_ok=True)

    if offline_path:
        logger.warning("Falling back to the offline fixture for %s", name)
        path = _ensure_offline(offline_path, offline_builder)
        return path, _make_record(name, url, path, None, mode="offline-fallback")

    raise CacheError(f"Failed to fetch {name!r}: {last_error}")


def _download(url: str, target: Path) -> Path:
    import urllib.request

    target.parent.mkdir(parents=True, exist_ok=True)
    with urllib.request.urlopen(url) as response, target.open("wb") as handle:
        handle.write(response.read())
    return target


def _ensure_offline(path: Path, builder: Callable[[Path], None] | None = None) -> Path:
    if builder and not path.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
        builder(path)
    if not path.exists():
        raise CacheError(f"Offline fixture missing: {path}")
    return path


def _make_record(
    name: str,
    url: str,
    path: Path,
    checksum: str | None,
    *,
    mode: str,
) -> Mapping[str, object]:
    digest = _sha256(path)
    if checksum and digest != checksum:
        raise CacheError(f"Checksum mismatch for {name!r}: {digest} != {checksum}")
    return {
        "name": name,
        "url": url,
        "local_path": str(path),
        "checksum": digest,
        "mode": mode,
    }


__all__ = ["CacheError", "DEFAULT_CACHE_DIR", "fetch", "offline_default", "resolve_cache_dir"]
