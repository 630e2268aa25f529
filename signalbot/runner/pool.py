"""Bounded-concurrency worker pool for per-token evaluations."""

import asyncio
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class BoundedWorkerPool:
    """Run a coroutine per item with a fixed number of permits.

    A worker keeps its permit through the pause after each item, so at most
    ``concurrency`` items are in flight and outbound calls stay paced.
    """

    def __init__(
        self,
        concurrency: int = 2,
        pause_seconds: float = 1.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize worker pool.

        Args:
            concurrency: Maximum items processed at once
            pause_seconds: Pause held by a worker after each item
            sleep: Sleep coroutine (injectable for tests)
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.concurrency = concurrency
        self.pause_seconds = pause_seconds
        self._sleep = sleep

    async def run(
        self, items: Iterable[T], worker: Callable[[T], Awaitable[Any]]
    ) -> list[Any]:
        """Process every item and return results in input order.

        Exceptions raised by ``worker`` are logged and returned in place of
        the result; they never cancel sibling items.
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def guarded(item: T) -> Any:
            async with semaphore:
                try:
                    return await worker(item)
                finally:
                    if self.pause_seconds > 0:
                        await self._sleep(self.pause_seconds)

        results = await asyncio.gather(
            *(guarded(item) for item in items), return_exceptions=True
        )

        for result in results:
            if isinstance(result, Exception):
                logger.error(
                    "Worker raised",
                    error=str(result) or type(result).__name__,
                    error_type=type(result).__name__,
                )
        return results
