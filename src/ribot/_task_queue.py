from __future__ import annotations

import threading
from collections import deque
from typing import TYPE_CHECKING

from ribot._utils.docs import docs_group

if TYPE_CHECKING:
    from ribot._request import Request


@docs_group('Classes')
class TaskQueue:
    """The crawl frontier: an ordered container of requests waiting to be dispatched.

    Every operation takes an internal lock, so requests can be pushed from any number of workers (including
    transports running in worker threads) while the dispatcher pops from the other end. `push` appends to the tail
    (breadth-first order), `push_front` prepends to the head (depth-first order).

    `pop` never blocks: on an empty queue it returns `None`. The spider's dispatcher is the only consumer, so
    a `None` after a non-empty `is_empty` check cannot happen there, but other consumers must expect it.
    """

    def __init__(self) -> None:
        self._requests: deque[Request] = deque()
        self._lock = threading.Lock()

    def push(self, request: Request) -> None:
        """Append the request to the tail of the queue."""
        with self._lock:
            self._requests.append(request)

    def push_front(self, request: Request) -> None:
        """Prepend the request to the head of the queue."""
        with self._lock:
            self._requests.appendleft(request)

    def pop(self) -> Request | None:
        """Remove and return the request at the head of the queue, or `None` if the queue is empty."""
        with self._lock:
            if not self._requests:
                return None
            return self._requests.popleft()

    def is_empty(self) -> bool:
        with self._lock:
            return not self._requests

    def __len__(self) -> int:
        with self._lock:
            return len(self._requests)

    def __repr__(self) -> str:
        return f'<TaskQueue pending={len(self)}>'
