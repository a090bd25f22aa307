from ._base import HttpClient, Response
from ._httpx import HttpxHttpClient

__all__ = [
    'HttpClient',
    'HttpxHttpClient',
    'Response',
]
