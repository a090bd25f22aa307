from __future__ import annotations

import time
from datetime import timedelta
from threading import Lock

from ribot._utils.docs import docs_group
from ribot.statistics._models import FinalStatistics


@docs_group('Statistics')
class Statistics:
    """Thread-safe counters collected by the spider while it runs.

    `calculate` turns the counters into a `FinalStatistics` snapshot. The spider takes one and resets the counters
    when a run finishes.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._counters = dict.fromkeys(_COUNTER_NAMES, 0)
        self._started_at: float | None = None
        self._finished_at: float | None = None

    def reset(self) -> None:
        with self._lock:
            self._counters = dict.fromkeys(_COUNTER_NAMES, 0)
            self._started_at = None
            self._finished_at = None

    def record_start(self) -> None:
        with self._lock:
            self._started_at = time.monotonic()
            self._finished_at = None

    def record_finish(self) -> None:
        with self._lock:
            self._finished_at = time.monotonic()

    def increment(self, counter: str) -> None:
        """Increase one of the `FinalStatistics` counters by one."""
        with self._lock:
            if counter not in self._counters:
                raise KeyError(f'Unknown statistics counter: {counter}')
            self._counters[counter] += 1

    def __getitem__(self, counter: str) -> int:
        with self._lock:
            return self._counters[counter]

    def calculate(self) -> FinalStatistics:
        """Take a snapshot of the counters, including the runtime so far."""
        with self._lock:
            if self._started_at is None:
                runtime = timedelta(0)
            else:
                end = self._finished_at if self._finished_at is not None else time.monotonic()
                runtime = timedelta(seconds=end - self._started_at)

            return FinalStatistics(**self._counters, crawler_runtime=runtime)


_COUNTER_NAMES = (
    'requests_enqueued',
    'requests_dropped',
    'requests_finished',
    'requests_failed',
    'responses_dropped',
    'handler_errors',
    'items_scraped',
    'items_dropped',
)
