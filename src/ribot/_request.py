from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from enum import IntEnum
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer

from ribot._types import HttpHeaders, HttpMethod, HttpPayload
from ribot._utils.docs import docs_group
from ribot._utils.urls import validate_http_url

if TYPE_CHECKING:
    from typing_extensions import Self

    from ribot._types import ResponseHandler


class RequestState(IntEnum):
    """Where a request currently is in its lifecycle."""

    CREATED = 0
    DROPPED = 1
    ENQUEUED = 2
    DISPATCHED = 3
    DOWNLOAD_FAILED = 4
    DOWNLOADED = 5
    RESPONSE_DROPPED = 6
    HANDLERS_INVOKED = 7
    HANDLER_FAILED = 8

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {
        RequestState.DROPPED,
        RequestState.DOWNLOAD_FAILED,
        RequestState.RESPONSE_DROPPED,
        RequestState.HANDLERS_INVOKED,
        RequestState.HANDLER_FAILED,
    }
)


@docs_group('Data structures')
class Request(BaseModel):
    """A single unit of crawl work: what to fetch and what to do with the response.

    Besides the usual HTTP parts (URL, method, headers and body) a request carries the ordered list of response
    handlers bound to it, and a free-form `meta` dictionary that travels with it through every pipeline stage and
    is reachable from the response via `response.request.meta`.

    ### Usage

    ```python
    from ribot import Request

    async def print_title(response: Response) -> None:
        print(response.request.meta['page'], response.status_code)

    request = Request.from_url('https://example.com', handlers=[print_title], meta={'page': 1})
    ```
    """

    model_config = ConfigDict(populate_by_name=True)

    url: Annotated[str, BeforeValidator(validate_http_url)]
    """The URL to fetch. Must be an absolute HTTP or HTTPS URL."""

    method: HttpMethod = 'GET'
    """HTTP request method."""

    headers: Annotated[HttpHeaders, Field(default_factory=HttpHeaders)]
    """HTTP request headers."""

    payload: Annotated[
        HttpPayload | None,
        BeforeValidator(lambda v: v.encode() if isinstance(v, str) else v),
        PlainSerializer(lambda v: v.decode() if isinstance(v, bytes) else v),
    ] = None
    """HTTP request body."""

    handlers: Annotated[list[Callable[..., Any]], Field(default_factory=list, exclude=True)]
    """Response handlers, invoked in this order once the response survives the pipeline."""

    meta: Annotated[dict[str, Any], Field(default_factory=dict)]
    """Caller-defined data threaded through the pipeline together with the request."""

    state: RequestState = RequestState.CREATED
    """Lifecycle state, updated by the spider as the request moves through it."""

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        method: HttpMethod = 'GET',
        headers: HttpHeaders | Mapping[str, str] | None = None,
        payload: HttpPayload | str | None = None,
        handlers: Iterable[ResponseHandler] = (),
        meta: dict[str, Any] | None = None,
    ) -> Self:
        """Create a new request for the given URL.

        Args:
            url: The URL of the request.
            method: The HTTP method of the request.
            headers: The HTTP headers of the request.
            payload: The request body. Strings are encoded as UTF-8.
            handlers: Response handlers to bind to the request.
            meta: Caller-defined data carried along with the request.
        """
        if not isinstance(headers, HttpHeaders):
            headers = HttpHeaders(dict(headers or {}))

        return cls(
            url=url,
            method=method,
            headers=headers,
            payload=payload,
            handlers=list(handlers),
            meta=meta or {},
        )

    def add_handler(self, handler: ResponseHandler) -> ResponseHandler:
        """Bind one more response handler to the request. Usable as a decorator."""
        self.handlers.append(handler)
        return handler

    def __repr__(self) -> str:
        return f'<Request {self.method} {self.url} state={self.state.name}>'
