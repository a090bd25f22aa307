from __future__ import annotations

from pydantic import AnyHttpUrl, TypeAdapter
from yarl import URL

_http_url_adapter = TypeAdapter(AnyHttpUrl)


def validate_http_url(value: str) -> str:
    """Validate that the value is an absolute HTTP or HTTPS URL and return it unchanged.

    Raises:
        pydantic.ValidationError: If the URL is not valid.
    """
    _http_url_adapter.validate_python(value)
    return value


def join_url(base_url: str, relative_url: str) -> str:
    """Resolve a (possibly relative) link against the URL of the page it was found on."""
    return str(URL(base_url).join(URL(relative_url)))
