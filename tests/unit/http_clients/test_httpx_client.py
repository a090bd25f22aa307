from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from ribot import Request, Spider, Stage
from ribot.errors import DownloadError
from ribot.http_clients import HttpxHttpClient

if TYPE_CHECKING:
    from ribot.http_clients import Response


def echo(request: httpx.Request) -> httpx.Response:
    if request.url.path == '/redirect':
        return httpx.Response(302, headers={'Location': '/target'})

    if request.url.path == '/down':
        raise httpx.ConnectError('Connection refused', request=request)

    return httpx.Response(
        200,
        headers={'Content-Type': 'application/json; charset=utf-8', 'X-Method': request.method},
        json={
            'path': request.url.path,
            'user_agent': request.headers.get('user-agent'),
            'body': request.content.decode(),
        },
    )


@pytest.fixture
def http_client() -> HttpxHttpClient:
    return HttpxHttpClient(transport=httpx.MockTransport(echo))


async def test_fetch_sends_request_parts(http_client: HttpxHttpClient) -> None:
    request = Request.from_url(
        'https://example.com/submit',
        method='POST',
        headers={'User-Agent': 'Ribot'},
        payload=b'a=1',
    )

    async with http_client:
        response = await http_client.fetch(request)

    assert response.status_code == 200
    assert response.request is request
    assert response.url == 'https://example.com/submit'
    assert response.headers['x-method'] == 'POST'
    assert response.encoding == 'utf-8'
    assert response.json() == {'path': '/submit', 'user_agent': 'Ribot', 'body': 'a=1'}


async def test_fetch_follows_redirects(http_client: HttpxHttpClient) -> None:
    async with http_client:
        response = await http_client.fetch(Request.from_url('https://example.com/redirect'))

    assert response.status_code == 200
    assert response.url == 'https://example.com/target'
    assert response.request.url == 'https://example.com/redirect'


async def test_transport_errors_propagate(http_client: HttpxHttpClient) -> None:
    async with http_client:
        with pytest.raises(httpx.ConnectError):
            await http_client.fetch(Request.from_url('https://example.com/down'))


async def test_context_manager_tracks_activity(http_client: HttpxHttpClient) -> None:
    assert not http_client.active

    async with http_client:
        assert http_client.active

        with pytest.raises(RuntimeError, match='already active'):
            await http_client.__aenter__()

    assert not http_client.active


async def test_spider_opens_and_closes_the_client(http_client: HttpxHttpClient) -> None:
    errors: list[Exception] = []

    class CollectErrors(Stage):
        async def on_error(self, spider: Spider, error: Exception) -> None:
            errors.append(error)

    spider = Spider(downloader=http_client, configure_logging=False, stages=[CollectErrors()])
    payloads: list[object] = []
    activity: list[bool] = []

    def handler(response: Response) -> None:
        activity.append(http_client.active)
        payloads.append(response.json())

    await spider.get('https://example.com/page', handler)
    await spider.get('https://example.com/down', handler)
    stats = await spider.run()

    assert payloads == [{'path': '/page', 'user_agent': 'Ribot', 'body': ''}]
    assert activity == [True]
    assert not http_client.active
    assert stats.requests_failed == 1
    assert isinstance(errors[0], DownloadError)
    assert isinstance(errors[0].wrapped_exception, httpx.ConnectError)
