"""Logging setup and timing helpers."""

from __future__ import annotations

import logging
import time

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: int | str = logging.INFO) -> None:
    """Apply the service log format to the root logger."""

    logging.basicConfig(format=LOG_FORMAT, level=level)


class Timer:
    """Simple context timer used around batch work."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
