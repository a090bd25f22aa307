from __future__ import annotations

import asyncio
import inspect
import logging
import random
import threading
from contextlib import AsyncExitStack
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from ribot._log_config import configure_logger, get_configured_log_level
from ribot._request import Request, RequestState
from ribot._scheduling import WorkerPool
from ribot._task_queue import TaskQueue
from ribot._types import HttpHeaders
from ribot._utils.docs import docs_group
from ribot.configuration import DEFAULT_WORKER_POOL_SIZE, Configuration
from ribot.errors import DownloadError, RequestHandlerError
from ribot.http_clients import HttpClient, HttpxHttpClient
from ribot.pipeline import Pipeline
from ribot.statistics import FinalStatistics, Statistics

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from ribot._payload import Payload
    from ribot._types import Downloader, HttpMethod, ResponseHandler
    from ribot.http_clients import Response
    from ribot.pipeline import Stage


@docs_group('Classes')
class Spider:
    """The crawling engine: a frontier of requests, a pipeline of stages and a fixed pool of workers.

    Requests are submitted with `crawl` (or the `get` / `post` / `put` helpers). Each submitted request passes the
    `on_request` chain and, if it survives, enters the queue: at the tail in breadth-first mode, at the head in
    depth-first mode. `run` starts the workers and dispatches queued requests to them one at a time. A worker
    downloads the request, reports a failure through the `on_error` chain, or passes the response through the
    `on_response` chain and then to every handler bound to the request. Handlers may submit new requests, which
    feeds the queue again.

    `run` returns once the queue is empty and no worker is processing a request. A request counts as unfinished
    from the moment it is enqueued until its worker has completed it, including every follow-up request its handlers
    submitted, so the run cannot end while a handler is still producing work.

    ### Usage

    ```python
    import asyncio

    from ribot import Response, Spider

    spider = Spider(worker_pool_size=5)

    async def parse(response: Response) -> None:
        await spider.new_item({'url': response.url, 'status': response.status_code})

    async def main() -> None:
        await spider.get('https://example.com', parse)
        await spider.run()

    asyncio.run(main())
    ```
    """

    def __init__(
        self,
        *,
        configuration: Configuration | None = None,
        downloader: Downloader | HttpClient | None = None,
        worker_pool_size: int | None = None,
        depth_first: bool | None = None,
        rand_sleep_range: tuple[timedelta, timedelta] | None = None,
        user_agent: str | None = None,
        stages: Iterable[Stage] = (),
        configure_logging: bool = True,
        _logger: logging.Logger | None = None,
    ) -> None:
        """Initialize a new instance.

        Args:
            configuration: Provides the defaults of all the other settings.
            downloader: The transport. Either an `HttpClient`, or a function taking a `Request` and returning
                a `Response` (coroutine functions are awaited, plain functions run in a worker thread). Defaults to
                an `HttpxHttpClient`.
            worker_pool_size: Number of requests processed concurrently. Zero means the default.
            depth_first: Insert submitted requests at the head of the queue instead of the tail.
            rand_sleep_range: A `(min, max)` range of the random pause between two dispatches. No pause is made when
                `min >= max` or `max` is zero.
            user_agent: `User-Agent` header stamped on submitted requests that do not set one.
            stages: Pipeline stages to register, in order.
            configure_logging: If True, set up the root logger with the `RibotLogFormatter`.
            _logger: A logger instance, typically provided by a subclass, for consistent logging labels.
        """
        config = configuration or Configuration()
        self._configuration = config

        if configure_logging:
            configure_logger(logging.getLogger(), config, remove_old_handlers=True)
            httpx_logger = logging.getLogger('httpx')
            debug_enabled = get_configured_log_level(config) <= logging.DEBUG
            httpx_logger.setLevel(logging.DEBUG if debug_enabled else logging.WARNING)
        self._logger = _logger or logging.getLogger(__name__)

        # Transport
        self._http_client: HttpClient | None = None
        if downloader is None:
            self._http_client = HttpxHttpClient(timeout=config.http_timeout)
            self._downloader: Downloader = self._http_client.fetch
        elif isinstance(downloader, HttpClient):
            self._http_client = downloader
            self._downloader = downloader.fetch
        else:
            self._downloader = downloader

        # Crawl settings
        self.worker_pool_size = worker_pool_size if worker_pool_size is not None else config.worker_pool_size
        self.depth_first = depth_first if depth_first is not None else config.depth_first
        self.rand_sleep_range = rand_sleep_range or (config.rand_sleep_min, config.rand_sleep_max)
        self.user_agent = user_agent or config.user_agent

        # Frontier and termination tracking
        self._queue = TaskQueue()
        self._unfinished = 0
        self._unfinished_lock = threading.Lock()
        self._work_changed: asyncio.Condition | None = None

        self._pipeline = Pipeline()
        for stage in stages:
            self.use(stage)

        self._statistics = Statistics()

        self._running = False

    @property
    def log(self) -> logging.Logger:
        """The logger used by the spider."""
        return self._logger

    @property
    def configuration(self) -> Configuration:
        return self._configuration

    @property
    def pipeline(self) -> Pipeline:
        """The chain of registered stages."""
        return self._pipeline

    @property
    def queue(self) -> TaskQueue:
        """The frontier of requests waiting to be dispatched."""
        return self._queue

    @property
    def statistics(self) -> Statistics:
        """Counters of the current run, or of the next one between runs. `run` returns the final snapshot."""
        return self._statistics

    @property
    def worker_pool_size(self) -> int:
        return self._worker_pool_size

    @worker_pool_size.setter
    def worker_pool_size(self, value: int) -> None:
        if value < 0:
            raise ValueError('worker_pool_size must not be negative')
        self._worker_pool_size = value or DEFAULT_WORKER_POOL_SIZE

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def unfinished(self) -> int:
        """Number of requests that are enqueued or dispatched but not yet fully processed."""
        with self._unfinished_lock:
            return self._unfinished

    @property
    def in_flight(self) -> int:
        """Number of requests dispatched to a worker and not yet fully processed."""
        with self._unfinished_lock:
            return self._unfinished - len(self._queue)

    def use(self, stage: Stage) -> Stage:
        """Register a stage at the end of the pipeline and call its `init` hook.

        Stages can be registered while the spider runs; they apply to values entering the pipeline afterwards.
        """
        stage.init(self)
        self._pipeline.add(stage)
        self._logger.debug(f'Registered pipeline stage {stage!r}')
        return stage

    async def crawl(self, request: Request) -> Request | None:
        """Submit a request.

        The `User-Agent` header is set unless the request already has one, then the request passes the `on_request`
        chain. A surviving request is enqueued according to the traversal mode and returned. A dropped request is
        silently discarded and `None` is returned.
        """
        request.headers = request.headers.with_default('User-Agent', self.user_agent)

        survivor = await self._pipeline.process_request(self, request)
        if survivor is None:
            request.state = RequestState.DROPPED
            self._statistics.increment('requests_dropped')
            return None

        await self._enqueue(survivor)
        return survivor

    async def get(
        self,
        url: str,
        *handlers: ResponseHandler,
        headers: HttpHeaders | Mapping[str, str] | None = None,
        meta: dict[str, Any] | None = None,
    ) -> Request | None:
        """Submit a GET request for the URL with the given response handlers."""
        request = Request.from_url(url, headers=headers, handlers=handlers, meta=meta)
        return await self.crawl(request)

    async def post(
        self,
        url: str,
        payload: Payload,
        *handlers: ResponseHandler,
        headers: HttpHeaders | Mapping[str, str] | None = None,
        meta: dict[str, Any] | None = None,
    ) -> Request | None:
        """Submit a POST request whose body and `Content-Type` are built from the payload.

        Raises:
            PayloadConstructionError: If the payload cannot be encoded. Nothing is submitted in that case.
        """
        return await self._send_with_payload('POST', url, payload, handlers, headers, meta)

    async def put(
        self,
        url: str,
        payload: Payload,
        *handlers: ResponseHandler,
        headers: HttpHeaders | Mapping[str, str] | None = None,
        meta: dict[str, Any] | None = None,
    ) -> Request | None:
        """Submit a PUT request whose body and `Content-Type` are built from the payload.

        Raises:
            PayloadConstructionError: If the payload cannot be encoded. Nothing is submitted in that case.
        """
        return await self._send_with_payload('PUT', url, payload, handlers, headers, meta)

    async def new_item(self, item: Any) -> Any | None:
        """Pass an extracted item through the `on_item` chain. Return what survived, or `None` if it was dropped."""
        survivor = await self._pipeline.process_item(self, item)
        self._statistics.increment('items_dropped' if survivor is None else 'items_scraped')
        return survivor

    async def run(self, requests: Sequence[str | Request] | None = None) -> FinalStatistics:
        """Process requests until the queue is empty and no request is in flight.

        Args:
            requests: Requests to submit before the workers start. Plain URLs become GET requests without handlers.

        Returns:
            Statistics of the run.
        """
        if self._running:
            raise RuntimeError('This spider is already running, submit more requests via `spider.crawl()`')

        self._running = True

        try:
            for request in requests or ():
                await self.crawl(request if isinstance(request, Request) else Request.from_url(request))

            self._work_changed = asyncio.Condition()
            self._statistics.record_start()
            self._logger.info(
                f'Starting the crawl with {self.worker_pool_size} workers and {len(self._queue)} queued requests'
            )

            async with AsyncExitStack() as exit_stack:
                if self._http_client is not None and not self._http_client.active:
                    await exit_stack.enter_async_context(self._http_client)

                worker_pool = WorkerPool[Request](size=self.worker_pool_size, run_task_function=self._process_request)
                await exit_stack.enter_async_context(worker_pool)

                await self._dispatch(worker_pool)
        finally:
            self._statistics.record_finish()
            final_statistics = self._statistics.calculate()
            # Requests submitted from now on belong to the next run
            self._statistics.reset()
            self._work_changed = None
            self._running = False

        self._logger.info('Crawl finished', extra=final_statistics.to_dict())
        return final_statistics

    def run_sync(self, requests: Sequence[str | Request] | None = None) -> FinalStatistics:
        """Run the spider in a new event loop, blocking until the crawl is finished."""
        return asyncio.run(self.run(requests))

    async def _send_with_payload(
        self,
        method: HttpMethod,
        url: str,
        payload: Payload,
        handlers: Iterable[ResponseHandler],
        headers: HttpHeaders | Mapping[str, str] | None,
        meta: dict[str, Any] | None,
    ) -> Request | None:
        encoded = payload.encode()
        request = Request.from_url(
            url,
            method=method,
            headers=HttpHeaders({'Content-Type': encoded.content_type}) | dict(headers or {}),
            payload=encoded.body,
            handlers=handlers,
            meta=meta,
        )
        return await self.crawl(request)

    async def _enqueue(self, request: Request) -> None:
        if self.depth_first:
            self._queue.push_front(request)
        else:
            self._queue.push(request)

        request.state = RequestState.ENQUEUED
        with self._unfinished_lock:
            self._unfinished += 1

        self._statistics.increment('requests_enqueued')
        await self._notify_work_changed()

    async def _notify_work_changed(self) -> None:
        work_changed = self._work_changed
        if work_changed is None:
            return

        async with work_changed:
            work_changed.notify_all()

    def _has_work_or_is_finished(self) -> bool:
        return not self._queue.is_empty() or self.unfinished == 0

    async def _next_request(self) -> Request | None:
        """Wait for a request to dispatch. Return `None` once everything submitted has been processed."""
        work_changed = self._work_changed
        if work_changed is None:
            raise RuntimeError('The spider is not running')

        async with work_changed:
            await work_changed.wait_for(self._has_work_or_is_finished)
            # The dispatcher is the only consumer of the queue, so this is `None` only when nothing is unfinished
            return self._queue.pop()

    async def _dispatch(self, worker_pool: WorkerPool[Request]) -> None:
        while True:
            worker = await worker_pool.wait_for_idle_worker()

            request = await self._next_request()
            if request is None:
                worker_pool.release(worker)
                self._logger.debug('The queue is exhausted and no request is in flight')
                return

            request.state = RequestState.DISPATCHED
            worker_pool.assign(worker, request)

            await self._rand_sleep()

    async def _rand_sleep(self) -> None:
        low, high = self.rand_sleep_range
        if low >= high or high <= timedelta(0):
            return

        delay = low + (high - low) * random.random()
        await asyncio.sleep(delay.total_seconds())

    async def _process_request(self, request: Request) -> None:
        try:
            await self._handle_request(request)
        finally:
            with self._unfinished_lock:
                self._unfinished -= 1
            await self._notify_work_changed()

    async def _handle_request(self, request: Request) -> None:
        try:
            response = await self._download(request)
        except Exception as exc:
            request.state = RequestState.DOWNLOAD_FAILED
            self._statistics.increment('requests_failed')
            error = DownloadError(exc, request)
            self._logger.warning(f'Downloader error: {exc!r} ({request.method} {request.url})')
            await self._pipeline.broadcast_error(self, error)
            return

        request.state = RequestState.DOWNLOADED

        try:
            survivor = await self._pipeline.process_response(self, response)
            if survivor is None:
                request.state = RequestState.RESPONSE_DROPPED
                self._statistics.increment('responses_dropped')
                return

            for handler in tuple(request.handlers):
                result = handler(survivor)
                if inspect.isawaitable(result):
                    await result
        except Exception as exc:
            request.state = RequestState.HANDLER_FAILED
            self._statistics.increment('handler_errors')
            self._logger.error(f'Handling the response of {request.url} failed', exc_info=exc)
            await self._pipeline.broadcast_error(self, RequestHandlerError(exc, response))
            return

        request.state = RequestState.HANDLERS_INVOKED
        self._statistics.increment('requests_finished')

    async def _download(self, request: Request) -> Response:
        if _is_async_callable(self._downloader):
            return await self._downloader(request)

        result = await asyncio.to_thread(self._downloader, request)
        if inspect.isawaitable(result):
            return await result
        return result


def _is_async_callable(function: object) -> bool:
    return inspect.iscoroutinefunction(function) or inspect.iscoroutinefunction(getattr(function, '__call__', None))
