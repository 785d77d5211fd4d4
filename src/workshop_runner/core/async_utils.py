"""Async utility functions shared across modules."""

import asyncio
import contextlib
import logging
import time
from collections.abc import Awaitable, Callable, Coroutine
from typing import Any, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def run_async_with_timeout(coro: Coroutine[Any, Any, T], executor_timeout: float = 10.0) -> T:
    """Run async code like asyncio.run() but with timeout on executor shutdown.

    Used by CLI entry points. Filesystem scans run through asyncio.to_thread,
    so a stuck scan must not hang interpreter exit.

    Args:
        coro: Coroutine to execute.
        executor_timeout: Timeout in seconds for executor shutdown. Default 10s.

    Returns:
        Result of the coroutine.

    Raises:
        Same exceptions as the coroutine.

    """
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        return loop.run_until_complete(coro)
    finally:
        with contextlib.suppress(Exception):
            loop.run_until_complete(loop.shutdown_asyncgens())

        try:
            loop.run_until_complete(
                asyncio.wait_for(
                    loop.shutdown_default_executor(),
                    timeout=executor_timeout,
                )
            )
        except TimeoutError:
            logger.warning(
                "Executor shutdown timed out after %.1fs - some threads may still be running",
                executor_timeout,
            )

        asyncio.set_event_loop(None)
        loop.close()


async def poll_until(
    check: Callable[[], Awaitable[bool]],
    *,
    timeout: float,
    interval: float,
) -> bool:
    """Call ``check`` every ``interval`` seconds until it returns True.

    The deadline is wall-clock based: a slow check still counts against it.

    Args:
        check: Async predicate to evaluate.
        timeout: Total seconds before giving up.
        interval: Seconds to sleep between attempts.

    Returns:
        True if the predicate succeeded before the deadline, False otherwise.

    """
    deadline = time.monotonic() + timeout
    while True:
        if await check():
            return True
        if time.monotonic() >= deadline:
            return False
        await asyncio.sleep(interval)


def spawn_background(
    coro: Coroutine[Any, Any, Any],
    tasks: set[asyncio.Task[Any]],
    *,
    name: str | None = None,
) -> asyncio.Task[Any]:
    """Schedule a fire-and-forget coroutine, keeping a strong reference.

    The task removes itself from ``tasks`` when done and its failure is
    logged rather than lost.
    """
    task = asyncio.create_task(coro, name=name)
    tasks.add(task)

    def _done(t: asyncio.Task[Any]) -> None:
        tasks.discard(t)
        if not t.cancelled() and t.exception() is not None:
            logger.warning("Background task %s failed: %s", t.get_name(), t.exception())

    task.add_done_callback(_done)
    return task
