"""Annotated duration types for pydantic models and settings."""

from __future__ import annotations

from contextlib import suppress
from datetime import timedelta
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import PlainSerializer, TypeAdapter, ValidationError, WrapValidator

if TYPE_CHECKING:
    from collections.abc import Callable

_number_parser = TypeAdapter(float)


def _parse_number(value: Any) -> Any:
    # Environment variables always arrive as strings
    if isinstance(value, str):
        with suppress(ValidationError):
            return _number_parser.validate_python(value)
    return value


def _timedelta_from_ms(value: Any, handler: Callable[[Any], timedelta]) -> timedelta:
    value = _parse_number(value)
    if isinstance(value, (int, float)):
        return timedelta(milliseconds=value)
    return handler(value)


def _timedelta_from_secs(value: Any, handler: Callable[[Any], timedelta]) -> timedelta:
    value = _parse_number(value)
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    return handler(value)


timedelta_ms = Annotated[
    timedelta,
    PlainSerializer(lambda td: round(td.total_seconds() * 1000)),
    WrapValidator(_timedelta_from_ms),
]
timedelta_secs = Annotated[
    timedelta,
    PlainSerializer(lambda td: td.total_seconds()),
    WrapValidator(_timedelta_from_secs),
]
