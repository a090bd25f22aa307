from __future__ import annotations

import asyncio
import os
from typing import TYPE_CHECKING

import pytest

from ribot import Spider
from ribot.http_clients import Response

if TYPE_CHECKING:
    from collections.abc import Callable

    from ribot import Request


class FakeDownloader:
    """An in-memory transport answering every request with `200 OK`.

    Records the downloaded URLs in order and tracks how many downloads were running at the same time.
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self.delay = 0.0
        self.failing_urls: set[str] = set()
        self.bodies: dict[str, bytes] = {}
        self.concurrent = 0
        self.max_concurrent = 0

    async def __call__(self, request: Request) -> Response:
        self.calls.append(request.url)
        self.concurrent += 1
        self.max_concurrent = max(self.max_concurrent, self.concurrent)

        try:
            await asyncio.sleep(self.delay)
            if request.url in self.failing_urls:
                raise ConnectionError(f'Cannot connect to {request.url}')
        finally:
            self.concurrent -= 1

        return Response(status_code=200, request=request, body=self.bodies.get(request.url, b'ok'))


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove any `RIBOT_*` variables of the outer environment so that tests see the default configuration."""
    for name in list(os.environ):
        if name.upper().startswith('RIBOT_'):
            monkeypatch.delenv(name)


@pytest.fixture
def fake_downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture
def spider_factory(fake_downloader: FakeDownloader) -> Callable[..., Spider]:
    """Build spiders that use the fake downloader and leave the root logger alone."""

    def _create_spider(**kwargs: object) -> Spider:
        kwargs.setdefault('downloader', fake_downloader)
        kwargs.setdefault('configure_logging', False)
        return Spider(**kwargs)  # type: ignore[arg-type]

    return _create_spider
