"""
Resource Monitor — SSE endpoint for live resource updates

On connect a listener receives:
  - event: welcome             — informational
  - event: resources:initial   — full enriched list + count
then every resources:update published on the broadcast channel (direct
quantity updates and scheduled snapshots), with keepalive comments in between.
"""
import json
import logging
import time
from contextlib import aclosing
from typing import Any, AsyncGenerator

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.broadcast import (
    EVENT_INITIAL, EVENT_WELCOME, RedisBroadcaster, get_broadcaster, resources_payload,
)
from app.core.config import get_settings
from app.db.database import get_db
from app.db.resource_ops import list_all
from app.models.resource import utcnow

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/resources", tags=["stream"])


def format_event(event: str, data: dict[str, Any]) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


async def _sse_generator(
    request: Request, broadcaster: RedisBroadcaster, initial: dict[str, Any],
) -> AsyncGenerator[str, None]:
    yield f"retry: {settings.SSE_RETRY_MILLISECONDS}\n\n"
    yield format_event(EVENT_WELCOME, {
        "message": "Connected to real-time monitoring system",
        "timestamp": utcnow().isoformat(),
    })
    yield format_event(EVENT_INITIAL, initial)

    last_keepalive = time.monotonic()
    async with aclosing(broadcaster.listen()) as messages:
        async for message in messages:
            if await request.is_disconnected():
                break
            if message is not None:
                event, data = message
                yield format_event(event, data)
            elif time.monotonic() - last_keepalive >= settings.SSE_KEEPALIVE_INTERVAL_SECONDS:
                last_keepalive = time.monotonic()
                yield ": keepalive\n\n"


@router.get("/stream")
async def stream_resources(
    request: Request,
    db: AsyncSession = Depends(get_db),
    broadcaster: RedisBroadcaster = Depends(get_broadcaster),
):
    """Browser opens an EventSource here to follow resource levels live."""
    resources = await list_all(db)
    logger.info("Listener connected, sending %d resources", len(resources))

    return StreamingResponse(
        _sse_generator(request, broadcaster, resources_payload(resources, utcnow())),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",  # Disable Nginx buffering
            "Connection": "keep-alive",
        },
    )
