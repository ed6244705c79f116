"""Bounded-concurrency execution of async tasks."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def run_bounded(tasks: Sequence[Callable[[], Awaitable[T]]], limit: int) -> list[T]:
    """
    Run task factories with at most `limit` in flight.

    Tasks start in their original order as slots free up, and result[i]
    always holds the value of tasks[i]. The first failure is re-raised and
    every task still running or queued is cancelled.

    Args:
        tasks: Zero-argument callables returning awaitables
        limit: Maximum number of concurrently running tasks

    Returns:
        Results in task order
    """
    if limit < 1:
        raise ValueError(f"limit must be at least 1, got {limit}")
    if not tasks:
        return []

    # asyncio.Semaphore wakes waiters in FIFO order
    semaphore = asyncio.Semaphore(limit)
    results: list[T | None] = [None] * len(tasks)

    async def bounded(index: int, task: Callable[[], Awaitable[T]]) -> None:
        async with semaphore:
            results[index] = await task()

    pending = [asyncio.ensure_future(bounded(i, task)) for i, task in enumerate(tasks)]
    try:
        await asyncio.gather(*pending)
    except BaseException:
        for future in pending:
            future.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        raise

    logger.debug("Completed %d tasks with limit %d", len(tasks), limit)
    return results  # type: ignore[return-value]
