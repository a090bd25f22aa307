from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING, Generic, TypeVar

from ribot._utils.docs import docs_group

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from types import TracebackType

    from typing_extensions import Self

logger = getLogger(__name__)

T = TypeVar('T')


@docs_group('Classes')
class WorkerPool(Generic[T]):
    """A fixed number of asyncio worker tasks, each processing one job at a time.

    Jobs are handed over through a rendezvous: an idle worker publishes a fresh future to the pool's channel of
    idle workers and awaits it. A dispatcher calls `wait_for_idle_worker`, which blocks until some worker is idle,
    and then either `assign`s a job to that worker or `release`s it unused. Nothing in the pool polls.

    The pool is an async context manager. Leaving the context normally waits for every worker to become idle and
    shuts them down; leaving it with an exception cancels the workers.

    ### Usage

    ```python
    async def process(job: str) -> None:
        ...

    async with WorkerPool(size=4, run_task_function=process) as pool:
        for job in jobs:
            worker = await pool.wait_for_idle_worker()
            pool.assign(worker, job)
    ```
    """

    def __init__(self, *, size: int, run_task_function: Callable[[T], Awaitable[None]]) -> None:
        """Initialize a new instance.

        Args:
            size: Number of workers.
            run_task_function: Processes one job. It should handle its own errors; anything it raises is logged and
                the worker moves on to the next job.
        """
        if size < 1:
            raise ValueError('The worker pool size must be 1 or larger')

        self._size = size
        self._run_task_function = run_task_function
        self._idle_workers: asyncio.Queue[asyncio.Future[T | None]] | None = None
        self._worker_tasks = list[asyncio.Task]()
        self._busy_workers = 0

    @property
    def size(self) -> int:
        return self._size

    @property
    def busy_workers(self) -> int:
        """Number of workers currently processing a job."""
        return self._busy_workers

    @property
    def active(self) -> bool:
        return bool(self._worker_tasks)

    async def __aenter__(self) -> Self:
        self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        exc_traceback: TracebackType | None,
    ) -> None:
        if exc_type is None:
            await self.stop()
        else:
            await self.abort()

    def start(self) -> None:
        """Spawn the workers."""
        if self.active:
            raise RuntimeError('The worker pool is already running')

        self._idle_workers = asyncio.Queue()
        self._worker_tasks = [
            asyncio.create_task(self._worker(), name=f'worker pool worker {index}') for index in range(self._size)
        ]
        logger.debug(f'Started {self._size} workers')

    async def wait_for_idle_worker(self) -> asyncio.Future[T | None]:
        """Block until a worker is idle and reserve it. The returned handle must be assigned or released."""
        if self._idle_workers is None:
            raise RuntimeError('The worker pool is not running')

        return await self._idle_workers.get()

    def assign(self, worker: asyncio.Future[T | None], job: T) -> None:
        """Hand a job over to a reserved worker."""
        worker.set_result(job)

    def release(self, worker: asyncio.Future[T | None]) -> None:
        """Return a reserved worker to the pool without giving it a job."""
        if self._idle_workers is None:
            raise RuntimeError('The worker pool is not running')

        self._idle_workers.put_nowait(worker)

    async def stop(self) -> None:
        """Wait until every worker is idle, then shut them all down."""
        if not self.active:
            return

        for _ in self._worker_tasks:
            worker = await self.wait_for_idle_worker()
            worker.set_result(None)

        await asyncio.gather(*self._worker_tasks)
        self._reset()
        logger.debug('All workers stopped')

    async def abort(self) -> None:
        """Cancel all workers, including the ones in the middle of a job."""
        for task in self._worker_tasks:
            task.cancel()

        await asyncio.gather(*self._worker_tasks, return_exceptions=True)
        self._reset()
        logger.debug('All workers cancelled')

    def _reset(self) -> None:
        self._worker_tasks = []
        self._idle_workers = None
        self._busy_workers = 0

    async def _worker(self) -> None:
        idle_workers = self._idle_workers
        if idle_workers is None:
            raise RuntimeError('The worker pool is not running')

        loop = asyncio.get_running_loop()

        while True:
            handle: asyncio.Future[T | None] = loop.create_future()
            idle_workers.put_nowait(handle)

            job = await handle
            if job is None:
                return

            self._busy_workers += 1
            try:
                await self._run_task_function(job)
            except Exception:
                logger.exception('Unhandled exception in a worker task')
            finally:
                self._busy_workers -= 1
