"""Bounded-concurrency batch scheduler."""
import asyncio
import logging
from typing import Awaitable, Callable, Iterable, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_CONCURRENCY = 10


class BatchScheduler:
    """
    Runs one batch of workers with at most ``limit`` in flight.

    All items are submitted at once; the semaphore admits new work as
    slots free. ``run`` returns only when every worker has resolved, with
    results in completion order.
    """

    def __init__(self, limit: int = DEFAULT_CONCURRENCY):
        if limit < 1:
            raise ValueError("concurrency limit must be at least 1")
        self._limit = limit

    @property
    def limit(self) -> int:
        return self._limit

    async def run(
        self,
        items: Iterable[T],
        worker: Callable[[T], Awaitable[R]],
    ) -> List[R]:
        semaphore = asyncio.Semaphore(self._limit)

        async def _bounded(item: T) -> R:
            async with semaphore:
                return await worker(item)

        tasks = [asyncio.create_task(_bounded(item)) for item in items]
        if not tasks:
            return []

        results: List[R] = []
        try:
            for task in asyncio.as_completed(tasks):
                results.append(await task)
        except BaseException:
            await self._cancel_remaining_tasks(tasks)
            raise
        return results

    async def _cancel_remaining_tasks(self, tasks: List[asyncio.Task]) -> None:
        """Cancel all remaining tasks."""
        for task in tasks:
            if not task.done():
                task.cancel()

        await asyncio.gather(*tasks, return_exceptions=True)
