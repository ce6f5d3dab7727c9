"""Server-sent events: every team's chart, re-sent after each poll cycle."""

import asyncio
import json
import time
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from app.api.deps import get_database, get_poller
from app.config.database import Database
from app.services.chart_aggregator import build_all_charts

logger = logging.getLogger(__name__)

router = APIRouter(tags=["stream"])

KEEPALIVE_SECONDS = 15.0


def format_sse(data: str, event: str = "update") -> str:
    event_id = int(time.time() * 1000)
    return f"id: {event_id}\nevent: {event}\ndata: {data}\n\n"


def charts_message(database: Database) -> str:
    with database.session_scope() as db:
        charts = [chart.to_dict() for chart in build_all_charts(db)]
    return format_sse(json.dumps(charts))


@router.get("/stream")
async def stream(request: Request, database: Database = Depends(get_database), poller=Depends(get_poller)):
    bus = poller.event_bus
    queue = bus.subscribe()

    async def events():
        try:
            yield charts_message(database)
            while True:
                if await request.is_disconnected():
                    break
                try:
                    await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield charts_message(database)
        finally:
            bus.unsubscribe(queue)
            logger.debug("Stream subscriber disconnected")

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
