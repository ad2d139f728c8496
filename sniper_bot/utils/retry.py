"""Exponential backoff for calls that can hit rate limits."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sniper_bot.errors import TransientNetworkError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay: float = 1.0,
    *,
    sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or ``max_attempts`` is used up.

    Attempt ``i`` (0-based) waits ``base_delay * 2 ** (i - 1)`` first, so the
    waits go 1x, 2x, 4x... Only ``TransientNetworkError`` is retried; anything
    else propagates straight away. Callers decide what is safe to repeat.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    last_exc: TransientNetworkError | None = None
    for attempt in range(max_attempts):
        if attempt > 0:
            delay = base_delay * (2 ** (attempt - 1))
            logger.debug(
                "Transient failure (%s), retry %d/%d in %.2fs",
                last_exc, attempt, max_attempts - 1, delay,
            )
            await sleep(delay)
        try:
            return await operation()
        except TransientNetworkError as exc:
            last_exc = exc

    assert last_exc is not None
    logger.warning("Exhausted %d attempts: %s", max_attempts, last_exc)
    raise last_exc
