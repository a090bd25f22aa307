from importlib import metadata

from ._payload import FormPayload, JsonPayload, Payload, PostDataType, TextPayload, build_payload
from ._request import Request, RequestState
from ._task_queue import TaskQueue
from ._types import HttpHeaders
from .http_clients import Response
from .pipeline import Stage
from .spider import Spider

__version__ = metadata.version('ribot')

__all__ = [
    'FormPayload',
    'HttpHeaders',
    'JsonPayload',
    'Payload',
    'PostDataType',
    'Request',
    'RequestState',
    'Response',
    'Spider',
    'Stage',
    'TaskQueue',
    'TextPayload',
    'build_payload',
]
