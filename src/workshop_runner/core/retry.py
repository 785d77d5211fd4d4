"""Retry with exponential backoff.

Used where a transient failure is expected and cheap to retry, e.g. reading a
cache file while another writer is mid-replace.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_backoff(
    fn: Callable[[], Awaitable[T]],
    *,
    retries: int,
    initial_delay: float,
    retry_on: tuple[type[BaseException], ...],
    label: str,
) -> T:
    """Await ``fn`` and retry on selected exceptions with doubling delays.

    Args:
        fn: Zero-argument coroutine factory.
        retries: Extra attempts after the first one.
        initial_delay: Seconds to wait before the first retry.
        retry_on: Exception types that trigger a retry. Anything else
            propagates immediately.
        label: Short description used in log messages.

    Returns:
        Result of the first successful attempt.

    Raises:
        The last exception from ``retry_on`` once attempts are exhausted.

    Examples:
        >>> await retry_with_backoff(
        ...     lambda: read_entry(path),
        ...     retries=3,
        ...     initial_delay=0.01,
        ...     retry_on=(json.JSONDecodeError,),
        ...     label="cache read",
        ... )

    """
    attempt = 0
    delay = initial_delay
    while True:
        try:
            return await fn()
        except retry_on as e:
            if attempt >= retries:
                logger.warning("%s failed after %d attempts: %s", label, attempt + 1, e)
                raise
            attempt += 1
            logger.debug(
                "%s failed (attempt %d, %d remaining): %s. Retrying in %.3fs",
                label,
                attempt,
                retries - attempt + 1,
                e,
                delay,
            )
            await asyncio.sleep(delay)
            delay *= 2
