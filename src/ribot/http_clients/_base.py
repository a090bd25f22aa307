from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ribot._types import HttpHeaders
from ribot._utils.docs import docs_group
from ribot._utils.urls import join_url

if TYPE_CHECKING:
    from types import TracebackType

    from typing_extensions import Self

    from ribot._request import Request


@dataclass(frozen=True)
@docs_group('Data structures')
class Response:
    """A downloaded response, bound to the request it answers.

    Responses are created once per download and handed to the `on_response` pipeline chain and then to the
    handlers of the originating request. They are not meant to be modified; a stage that wants to alter
    a response returns a new one (see `dataclasses.replace`).
    """

    status_code: int
    """The HTTP status code received from the server."""

    request: Request
    """The request this response answers."""

    headers: HttpHeaders = field(default_factory=HttpHeaders)
    """The HTTP headers received in the response."""

    body: bytes = b''
    """The raw response body."""

    url: str | None = None
    """The URL the response was finally loaded from, after redirects. Defaults to the request URL."""

    def __post_init__(self) -> None:
        if self.url is None:
            object.__setattr__(self, 'url', self.request.url)

    @property
    def encoding(self) -> str:
        """Charset from the `Content-Type` header, UTF-8 if none is declared."""
        content_type = self.headers.get('content-type', '')
        for part in content_type.split(';')[1:]:
            name, _, value = part.strip().partition('=')
            if name.lower() == 'charset' and value:
                return value.strip('"\'')
        return 'utf-8'

    @property
    def text(self) -> str:
        """The body decoded using the declared charset."""
        return self.body.decode(self.encoding, errors='replace')

    def json(self) -> Any:
        """Parse the body as JSON."""
        return json.loads(self.body)

    def urljoin(self, link: str) -> str:
        """Resolve a link found in this response against the URL the response was loaded from."""
        return join_url(self.url or self.request.url, link)

    def __repr__(self) -> str:
        return f'<Response {self.status_code} {self.url}>'


@docs_group('Abstract classes')
class HttpClient(ABC):
    """Base class for transports usable as the spider's downloader.

    A client is an async context manager: the spider enters it for the duration of `Spider.run` so that
    connection pools are opened and closed together with the crawl.
    """

    def __init__(self) -> None:
        self._active = False

    @property
    def active(self) -> bool:
        """Indicate whether the context is active."""
        return self._active

    @abstractmethod
    async def fetch(self, request: Request) -> Response:
        """Download the request.

        Raises:
            Exception: Any transport failure. The spider wraps it in a `DownloadError`.
        """

    async def close(self) -> None:
        """Release resources held by the client."""

    async def __aenter__(self) -> Self:
        if self._active:
            raise RuntimeError(f'The {self.__class__.__name__} is already active.')

        self._active = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_traceback: TracebackType | None,
    ) -> None:
        if not self._active:
            raise RuntimeError(f'The {self.__class__.__name__} is not active.')

        await self.close()
        self._active = False
