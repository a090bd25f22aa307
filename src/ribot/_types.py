from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterator, Mapping
from typing import TYPE_CHECKING, Annotated, Any, Literal, TypeVar, Union

from pydantic import ConfigDict, Field, PlainValidator, RootModel

from ribot._utils.docs import docs_group

if TYPE_CHECKING:
    from ribot._request import Request
    from ribot.http_clients import Response

    # Workaround for https://github.com/pydantic/pydantic/issues/9445
    J = TypeVar('J', bound='JsonSerializable')
    JsonSerializable = list[J] | dict[str, J] | str | bool | int | float | None
else:
    from pydantic import JsonValue as JsonSerializable

HttpMethod = Literal['GET', 'HEAD', 'POST', 'PUT', 'DELETE', 'CONNECT', 'OPTIONS', 'TRACE', 'PATCH']

HttpPayload = bytes

LogLevel = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

ResponseHandler = Callable[['Response'], Union[Awaitable[None], None]]
"""A callback invoked with a response that survived the pipeline. Either a coroutine function or a plain one."""

Downloader = Callable[['Request'], Union[Awaitable['Response'], 'Response']]
"""The transport. Turns a request into a response or raises. Either a coroutine function or a plain one."""

__all__ = [
    'Downloader',
    'HttpHeaders',
    'HttpMethod',
    'HttpPayload',
    'JsonSerializable',
    'LogLevel',
    'ResponseHandler',
]


def _normalize_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """Lowercase and strip the header names, strip the values and sort by name."""
    normalized = {k.lower().strip(): v.strip() for k, v in headers.items()}
    return dict(sorted(normalized.items()))


@docs_group('Data structures')
class HttpHeaders(RootModel, Mapping[str, str]):
    """An immutable, case-insensitive mapping of HTTP headers.

    Derive a modified copy with the `|` operator:

    ```python
    headers = HttpHeaders({'Accept': 'text/html'}) | HttpHeaders({'User-Agent': 'Ribot'})
    ```
    """

    model_config = ConfigDict(populate_by_name=True)

    root: Annotated[
        dict[str, str],
        PlainValidator(lambda value: _normalize_headers(value)),
        Field(default_factory=dict),
    ]

    def __getitem__(self, key: str) -> str:
        return self.root[key.lower()]

    def __setitem__(self, key: str, value: str) -> None:
        raise TypeError(f'{self.__class__.__name__} is immutable')

    def __delitem__(self, key: str) -> None:
        raise TypeError(f'{self.__class__.__name__} is immutable')

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self.root

    def __or__(self, other: Mapping[str, str]) -> HttpHeaders:
        """Return new headers where the values of `other` win."""
        return HttpHeaders({**self.root, **other})

    def __ror__(self, other: Mapping[str, str]) -> HttpHeaders:
        return HttpHeaders({**other, **self.root})

    def __iter__(self) -> Iterator[str]:  # type: ignore[override]
        yield from self.root

    def __len__(self) -> int:
        return len(self.root)

    def with_default(self, key: str, value: str) -> HttpHeaders:
        """Return these headers with `key` set to `value`, unless `key` is already present."""
        if key in self:
            return self
        return self | {key: value}
