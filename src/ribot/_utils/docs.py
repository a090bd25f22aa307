from __future__ import annotations

from collections.abc import Callable
from typing import Any, Literal, TypeVar

GroupName = Literal[
    'Classes',
    'Abstract classes',
    'Configuration',
    'Data structures',
    'Errors',
    'Functions',
    'HTTP clients',
    'Pipeline',
    'Statistics',
]

T = TypeVar('T', bound=Callable[..., Any])


def docs_group(group_name: GroupName) -> Callable[[T], T]:  # noqa: ARG001
    """Mark a public symbol with the API reference group it is rendered under.

    The decorator returns the decorated object untouched.
    """

    def wrapper(func: T) -> T:
        return func

    return wrapper
