from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass
class TimerResult:
    wall: float | None = None


@contextmanager
def measure_time() -> Iterator[TimerResult]:
    """Measure the wall-clock time spent inside the with-block."""
    result = TimerResult()
    started = time.monotonic()

    try:
        yield result
    finally:
        result.wall = time.monotonic() - started
