from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import timedelta

from typing_extensions import override

from ribot._utils.docs import docs_group


@dataclass(frozen=True)
@docs_group('Statistics')
class FinalStatistics:
    """Counters describing one finished spider run."""

    requests_enqueued: int
    """Requests that passed the `on_request` chain and entered the queue."""

    requests_dropped: int
    """Requests dropped by the `on_request` chain."""

    requests_finished: int
    """Requests whose response reached the handlers and all of them completed."""

    requests_failed: int
    """Requests whose download failed."""

    responses_dropped: int
    """Responses dropped by the `on_response` chain."""

    handler_errors: int
    """Responses whose processing raised in a handler or an `on_response` stage."""

    items_scraped: int
    """Items that passed the whole `on_item` chain."""

    items_dropped: int
    """Items dropped by the `on_item` chain."""

    crawler_runtime: timedelta
    """Wall-clock duration of the run."""

    def to_dict(self) -> dict[str, float | int]:
        return {k: v.total_seconds() if isinstance(v, timedelta) else v for k, v in asdict(self).items()}

    @override
    def __str__(self) -> str:
        return json.dumps(self.to_dict())
