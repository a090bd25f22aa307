from __future__ import annotations

from typing import TYPE_CHECKING

from ribot._utils.docs import docs_group

if TYPE_CHECKING:
    from ribot._request import Request
    from ribot.http_clients import Response

__all__ = [
    'DownloadError',
    'PayloadConstructionError',
    'RequestHandlerError',
]


@docs_group('Errors')
class DownloadError(Exception):
    """Wraps an exception raised by the transport and keeps the request that could not be downloaded.

    Instances are broadcast to every stage's `on_error` hook. The request itself is discarded, a stage that
    wants to retry it has to submit it again via `Spider.crawl`.
    """

    def __init__(self, wrapped_exception: Exception, request: Request) -> None:
        super().__init__(f'Downloading {request.method} {request.url} failed: {wrapped_exception!r}')
        self.wrapped_exception = wrapped_exception
        self.request = request


@docs_group('Errors')
class RequestHandlerError(Exception):
    """Wraps an exception raised while a response was processed, by a response handler or an `on_response` stage."""

    def __init__(self, wrapped_exception: Exception, response: Response) -> None:
        super().__init__(f'Handling response of {response.request.url} failed: {wrapped_exception!r}')
        self.wrapped_exception = wrapped_exception
        self.response = response

    @property
    def request(self) -> Request:
        """The request whose response was being handled."""
        return self.response.request


@docs_group('Errors')
class PayloadConstructionError(ValueError):
    """Raised when a request body cannot be built from the given payload data."""
