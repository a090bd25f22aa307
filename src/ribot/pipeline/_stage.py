from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ribot._utils.docs import docs_group

if TYPE_CHECKING:
    from ribot._request import Request
    from ribot.http_clients import Response
    from ribot.spider import Spider


@docs_group('Pipeline')
class Stage:
    """One link of the spider's pipeline, seeing every request, response, error and item that crosses it.

    All hooks default to passing the value through unchanged, so a concrete stage overrides only the ones it cares
    about. The three transform hooks return either the (possibly replaced) value or `None` to drop it; a dropped
    value is not seen by the stages after this one. `on_error` only observes: every stage receives every error.

    A single stage instance is shared by all workers of the spider, so hooks may run concurrently with each other
    and must keep any state they mutate consistent across `await` points.

    ### Usage

    ```python
    from ribot.pipeline import Stage

    class SkipImages(Stage):
        async def on_request(self, spider, request):
            if request.url.endswith(('.png', '.jpg')):
                return None
            return request
    ```
    """

    def init(self, spider: Spider) -> None:
        """Called once when the stage is registered with `Spider.use`."""

    async def on_request(self, spider: Spider, request: Request) -> Request | None:
        """Transform or drop a request before it is enqueued."""
        return request

    async def on_response(self, spider: Spider, response: Response) -> Response | None:
        """Transform or drop a response before its handlers run."""
        return response

    async def on_error(self, spider: Spider, error: Exception) -> None:
        """Observe a download or handler failure."""

    async def on_item(self, spider: Spider, item: Any) -> Any | None:
        """Transform or drop an item passed to `Spider.new_item`."""
        return item

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}>'
