"""Rate-limited iteration for sequential outbound calls."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator, Awaitable, Callable, Iterable, TypeVar

T = TypeVar("T")


async def paced(
    items: Iterable[T],
    delay_seconds: float,
    *,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> AsyncIterator[T]:
    """Yield items one by one, waiting ``delay_seconds`` between consecutive items."""
    first = True
    for item in items:
        if not first and delay_seconds > 0:
            await sleep(delay_seconds)
        first = False
        yield item
