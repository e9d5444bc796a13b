"""Sliding-window concurrency pool for independent capture jobs.

Jobs are admitted in order. Once ``limit`` are in flight, admission waits
for any one of them to finish before starting the next, so no more than
``limit`` ever run at once. A job that raises is logged; it frees its slot
like any other and never stops the remaining admissions.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

logger = logging.getLogger(__name__)

JobFactory = Callable[[], Awaitable[Any]]


async def run_concurrent(jobs: Iterable[JobFactory], limit: int) -> int:
    """Run zero-argument coroutine factories with at most *limit* in flight.

    Args:
        jobs: Ordered job factories; each is called only when admitted.
        limit: Maximum concurrent jobs (>= 1).

    Returns:
        The number of jobs whose coroutine raised.

    Raises:
        ValueError: If *limit* is below 1.
    """
    if limit < 1:
        raise ValueError(f"limit must be >= 1, got {limit}")

    in_flight: set[asyncio.Task[Any]] = set()
    failures = 0

    def reap(done: set[asyncio.Task[Any]]) -> None:
        nonlocal failures
        for task in done:
            in_flight.discard(task)
            if task.cancelled():
                failures += 1
                logger.error("Capture job was cancelled before finishing")
                continue
            exc = task.exception()
            if exc is not None:
                failures += 1
                logger.error("Capture job raised out of the pool: %s", exc, exc_info=exc)

    for job in jobs:
        in_flight.add(asyncio.ensure_future(job()))
        if len(in_flight) >= limit:
            done, _ = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
            reap(done)

    if in_flight:
        done, _ = await asyncio.wait(in_flight)
        reap(done)

    return failures
