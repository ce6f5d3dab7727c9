"""In-process notification bus for metrics updates."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)

METRICS_UPDATED = "metrics-updated"


class MetricsEventBus:
    """Fan-out of poller events to subscribed queues (one per SSE client)."""

    def __init__(self, max_queue_size: int = 100) -> None:
        self._max_queue_size = max_queue_size
        self._subscribers: set[asyncio.Queue] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    def emit(self, event: str, payload: dict[str, Any] | None = None) -> int:
        """Deliver to every subscriber without blocking; returns delivery count."""
        message = {"event": event, "payload": payload or {}}
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"Dropping '{event}' for a slow subscriber")
        logger.debug(f"Emitted '{event}' to {delivered} subscriber(s)")
        return delivered
