from __future__ import annotations

import json
import threading
from datetime import timedelta

import pytest

from ribot.statistics import FinalStatistics, Statistics


def test_counters_start_at_zero() -> None:
    stats = Statistics().calculate()

    assert stats.requests_enqueued == 0
    assert stats.items_scraped == 0
    assert stats.crawler_runtime == timedelta(0)


def test_increment_and_reset() -> None:
    statistics = Statistics()

    statistics.increment('requests_finished')
    statistics.increment('requests_finished')
    statistics.increment('handler_errors')

    assert statistics['requests_finished'] == 2
    assert statistics.calculate().handler_errors == 1

    statistics.reset()

    assert statistics['requests_finished'] == 0


def test_unknown_counter_is_rejected() -> None:
    with pytest.raises(KeyError, match='Unknown statistics counter'):
        Statistics().increment('pages_crawled')


def test_increment_from_threads() -> None:
    statistics = Statistics()

    def bump() -> None:
        for _ in range(1000):
            statistics.increment('items_scraped')

    threads = [threading.Thread(target=bump) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert statistics['items_scraped'] == 4000


def test_runtime_is_measured_between_start_and_finish() -> None:
    statistics = Statistics()

    statistics.record_start()
    statistics.record_finish()
    first = statistics.calculate().crawler_runtime

    assert first >= timedelta(0)
    assert statistics.calculate().crawler_runtime == first


def test_final_statistics_serialization() -> None:
    stats = FinalStatistics(
        requests_enqueued=3,
        requests_dropped=1,
        requests_finished=2,
        requests_failed=1,
        responses_dropped=0,
        handler_errors=0,
        items_scraped=5,
        items_dropped=1,
        crawler_runtime=timedelta(seconds=1.5),
    )

    as_dict = stats.to_dict()

    assert as_dict['crawler_runtime'] == 1.5
    assert as_dict['items_scraped'] == 5
    assert json.loads(str(stats)) == as_dict
