from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, Literal, TypeVar

from ribot._utils.docs import docs_group

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from ribot._request import Request
    from ribot.http_clients import Response
    from ribot.pipeline._stage import Stage
    from ribot.spider import Spider

logger = getLogger(__name__)

T = TypeVar('T')

TransformHook = Literal['on_request', 'on_response', 'on_item']


@docs_group('Pipeline')
class Pipeline:
    """An ordered chain of stages.

    The transform hooks are applied stage by stage, each stage receiving the output of the previous one. As soon
    as a stage returns `None` the value is dropped and the remaining stages are skipped. Errors are broadcast to all
    stages instead.

    Stages are kept in a tuple that is replaced, never mutated, when a stage is added. A chain that is already
    running keeps iterating over the stages it started with, so registering a stage while the spider runs is safe
    and takes effect for the values entering the pipeline afterwards.
    """

    def __init__(self, stages: Iterable[Stage] = ()) -> None:
        self._stages: tuple[Stage, ...] = tuple(stages)

    @property
    def stages(self) -> tuple[Stage, ...]:
        """A snapshot of the registered stages, in order."""
        return self._stages

    def add(self, stage: Stage) -> None:
        """Append a stage to the end of the chain."""
        self._stages = (*self._stages, stage)

    async def process_request(self, spider: Spider, request: Request) -> Request | None:
        """Run the `on_request` chain. Return the surviving request, or `None` if a stage dropped it."""
        return await self._run_chain('on_request', spider, request)

    async def process_response(self, spider: Spider, response: Response) -> Response | None:
        """Run the `on_response` chain. Return the surviving response, or `None` if a stage dropped it."""
        return await self._run_chain('on_response', spider, response)

    async def process_item(self, spider: Spider, item: Any) -> Any | None:
        """Run the `on_item` chain. Return the surviving item, or `None` if a stage dropped it."""
        return await self._run_chain('on_item', spider, item)

    async def broadcast_error(self, spider: Spider, error: Exception) -> None:
        """Pass the error to the `on_error` hook of every stage.

        A stage raising from its `on_error` hook is logged and does not prevent the other stages from seeing
        the error.
        """
        for stage in self._stages:
            try:
                await stage.on_error(spider, error)
            except Exception:
                logger.exception(f'{stage!r} raised while handling {error!r}')

    async def _run_chain(self, hook: TransformHook, spider: Spider, value: T) -> T | None:
        for stage in self._stages:
            value = await getattr(stage, hook)(spider, value)
            if value is None:
                logger.debug(f'{stage!r} dropped the value in {hook}')
                return None

        return value

    def __iter__(self) -> Iterator[Stage]:
        return iter(self._stages)

    def __len__(self) -> int:
        return len(self._stages)
