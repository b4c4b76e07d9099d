"""Latency measurement for generation slots."""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = structlog.get_logger(__name__)


@contextmanager
def timed(label: str, **log_fields: Any) -> Iterator[dict[str, float]]:
    """Measure the wrapped block; the yielded dict is filled on exit.

    ``elapsed`` holds seconds and ``elapsed_ms`` whole milliseconds, both
    set even when the block raises. Extra keyword arguments go to the log line.
    """
    timing = {"elapsed": 0.0, "elapsed_ms": 0.0}
    started = time.monotonic()
    try:
        yield timing
    finally:
        timing["elapsed"] = time.monotonic() - started
        timing["elapsed_ms"] = float(round(timing["elapsed"] * 1000))
        logger.debug("timed", label=label, elapsed_ms=timing["elapsed_ms"], **log_fields)
