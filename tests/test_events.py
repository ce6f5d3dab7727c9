import asyncio

import pytest

from app.services.events import METRICS_UPDATED, MetricsEventBus


@pytest.mark.asyncio
async def test_emit_fans_out_to_every_subscriber() -> None:
    bus = MetricsEventBus()
    first = bus.subscribe()
    second = bus.subscribe()

    delivered = bus.emit(METRICS_UPDATED, {"completed_at": "2025-01-01T00:00:00.000Z"})

    assert delivered == 2
    assert (await first.get())["event"] == METRICS_UPDATED
    assert (await second.get())["payload"] == {"completed_at": "2025-01-01T00:00:00.000Z"}


def test_unsubscribed_queue_receives_nothing() -> None:
    bus = MetricsEventBus()
    queue = bus.subscribe()
    bus.unsubscribe(queue)

    assert bus.emit(METRICS_UPDATED) == 0
    assert queue.empty()
    assert bus.subscriber_count == 0


def test_full_subscriber_queue_drops_without_blocking() -> None:
    bus = MetricsEventBus(max_queue_size=1)
    slow = bus.subscribe()
    fast = bus.subscribe()

    bus.emit(METRICS_UPDATED)
    fast.get_nowait()
    delivered = bus.emit(METRICS_UPDATED)

    assert delivered == 1
    assert slow.qsize() == 1
    assert isinstance(slow, asyncio.Queue)
