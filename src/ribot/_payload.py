"""Typed request bodies.

A payload is one of three kinds, told apart by the `kind` field: plain text, a URL-encoded form or a JSON value.
Each kind knows its content type and how to encode itself, so building a request body never depends on inspecting
the runtime type of an arbitrary value.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Literal, Union
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from ribot._types import JsonSerializable
from ribot._utils.docs import docs_group
from ribot.errors import PayloadConstructionError

__all__ = [
    'EncodedPayload',
    'FormPayload',
    'JsonPayload',
    'Payload',
    'PostDataType',
    'TextPayload',
    'build_payload',
]


class PostDataType(str, Enum):
    """The kinds of payload the spider knows how to encode."""

    TEXT = 'text'
    FORM = 'form'
    JSON = 'json'


@dataclass(frozen=True)
class EncodedPayload:
    """A request body together with the `Content-Type` describing it."""

    body: bytes
    content_type: str


class _BasePayload(BaseModel):
    model_config = ConfigDict(frozen=True, strict=True)


@docs_group('Data structures')
class TextPayload(_BasePayload):
    """A plain text body, sent as UTF-8."""

    kind: Literal['text'] = 'text'
    text: str

    def encode(self) -> EncodedPayload:
        return EncodedPayload(body=self.text.encode(), content_type='text/plain')


@docs_group('Data structures')
class FormPayload(_BasePayload):
    """A form submitted as `application/x-www-form-urlencoded`. Fields are encoded in sorted key order."""

    kind: Literal['form'] = 'form'
    fields: dict[str, str]

    def encode(self) -> EncodedPayload:
        body = urlencode(sorted(self.fields.items()))
        return EncodedPayload(body=body.encode(), content_type='application/x-www-form-urlencoded')


@docs_group('Data structures')
class JsonPayload(_BasePayload):
    """A JSON document, serialized compactly with sorted keys."""

    kind: Literal['json'] = 'json'
    value: JsonSerializable

    def encode(self) -> EncodedPayload:
        try:
            body = json.dumps(
                self.value,
                separators=(',', ':'),
                sort_keys=True,
                ensure_ascii=False,
                allow_nan=False,
            )
        except (TypeError, ValueError) as exc:
            raise PayloadConstructionError(f'Value cannot be serialized to JSON: {exc}') from exc

        return EncodedPayload(body=body.encode(), content_type='application/json')


Payload = Annotated[Union[TextPayload, FormPayload, JsonPayload], Field(discriminator='kind')]

payload_adapter: TypeAdapter[Payload] = TypeAdapter(Payload)

_DATA_FIELD_BY_KIND = {
    PostDataType.TEXT: 'text',
    PostDataType.FORM: 'fields',
    PostDataType.JSON: 'value',
}


@docs_group('Functions')
def build_payload(kind: PostDataType | str, data: Any) -> Payload:
    """Build a typed payload from an untyped value.

    Args:
        kind: The kind of payload to build.
        data: A `str` for text, a mapping of strings for forms, any JSON-compatible value for JSON.

    Raises:
        PayloadConstructionError: If the kind is unknown or the data does not fit it.
    """
    try:
        kind = PostDataType(kind)
    except ValueError as exc:
        raise PayloadConstructionError(f'Unknown payload kind: {kind!r}') from exc

    try:
        return payload_adapter.validate_python({'kind': kind.value, _DATA_FIELD_BY_KIND[kind]: data})
    except ValidationError as exc:
        raise PayloadConstructionError(f'Invalid data for a {kind.value} payload: {exc}') from exc
