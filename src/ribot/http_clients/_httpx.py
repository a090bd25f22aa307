from __future__ import annotations

from datetime import timedelta
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
from typing_extensions import override

from ribot._types import HttpHeaders
from ribot._utils.docs import docs_group
from ribot.http_clients._base import HttpClient, Response

if TYPE_CHECKING:
    from ribot._request import Request

logger = getLogger(__name__)


@docs_group('HTTP clients')
class HttpxHttpClient(HttpClient):
    """Default transport of the spider, based on the `HTTPX` library.

    A single `httpx.AsyncClient` is created lazily on the first download and shared by all workers. Redirects are
    followed and the final URL is recorded on the response. Transport errors (`httpx.TransportError` and friends)
    are not caught here, the spider reports them through the `on_error` chain.

    ### Usage

    ```python
    from datetime import timedelta

    from ribot import Spider
    from ribot.http_clients import HttpxHttpClient

    spider = Spider(downloader=HttpxHttpClient(timeout=timedelta(seconds=10)))
    ```
    """

    def __init__(
        self,
        *,
        timeout: timedelta = timedelta(seconds=30),
        follow_redirects: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
        **async_client_kwargs: Any,
    ) -> None:
        """Initialize a new instance.

        Args:
            timeout: Timeout of a single download, enforced by HTTPX.
            follow_redirects: Whether redirects are followed.
            transport: A custom HTTPX transport, e.g. `httpx.MockTransport` in tests.
            async_client_kwargs: Additional keyword arguments for `httpx.AsyncClient`.
        """
        super().__init__()
        self._timeout = timeout
        self._follow_redirects = follow_redirects
        self._transport = transport
        self._async_client_kwargs = async_client_kwargs
        self._client: httpx.AsyncClient | None = None

    @override
    async def fetch(self, request: Request) -> Response:
        client = self._get_client()

        http_request = client.build_request(
            method=request.method,
            url=request.url,
            headers=dict(request.headers),
            content=request.payload,
        )
        response = await client.send(http_request)
        body = await response.aread()

        logger.debug(f'{request.method} {request.url} -> {response.status_code}')

        return Response(
            status_code=response.status_code,
            request=request,
            headers=HttpHeaders(dict(response.headers)),
            body=body,
            url=str(response.url),
        )

    @override
    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _get_client(self) -> httpx.AsyncClient:
        """Return the shared `httpx.AsyncClient`, creating it on first use."""
        if self._client is None:
            kwargs: dict[str, Any] = {
                'timeout': self._timeout.total_seconds(),
                'follow_redirects': self._follow_redirects,
            }
            if self._transport is not None:
                kwargs['transport'] = self._transport

            kwargs.update(self._async_client_kwargs)
            self._client = httpx.AsyncClient(**kwargs)

        return self._client
