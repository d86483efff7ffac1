"""Centralized logging configuration for digitnet."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

ROOT_LOGGER = "digitnet"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(
    level: int | str = logging.INFO,
    log_file: str | Path | None = None,
    fmt: str = LOG_FORMAT,
) -> logging.Logger:
    """Attach console (and optional file) handlers to the package logger.

    Calling this more than once only adjusts the level and adds a file
    handler for a path not seen before.
    """

    logger = logging.getLogger(ROOT_LOGGER)
    if isinstance(level, str):
        name = level.upper()
        level = logging.getLevelName(name)
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {name}")
    logger.setLevel(level)
    formatter = logging.Formatter(fmt)

    if not any(getattr(handler, "_digitnet_console", False) for handler in logger.handlers):
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(formatter)
        console._digitnet_console = True  # type: ignore[attr-defined]
        logger.addHandler(console)

    if log_file is not None:
        log_path = Path(log_file)
        for handler in logger.handlers:
            if isinstance(handler, logging.FileHandler) and handler.baseFilename == os.path.abspath(
                log_path
            ):
                return logger
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


__all__ = ["LOG_FORMAT", "ROOT_LOGGER", "configure_logging"]
