from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any, TypeVar

from fastapi.responses import StreamingResponse

from threadnotes.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from fastapi import Request

    from threadnotes.core.realtime import LiveQuery

logger = get_logger(__name__)

T = TypeVar("T")

HEARTBEAT_SECONDS = 15.0


async def live_query_events(
    subscribe: Callable[[Callable[[T], None]], LiveQuery[T]],
    *,
    event: str,
    encode: Callable[[T], Any],
    request: Request | None = None,
    heartbeat: float = HEARTBEAT_SECONDS,
) -> AsyncIterator[str]:
    """Relay a live query as Server-Sent Events.

    Every delivery becomes one ``event``/``data`` pair. A comment line is sent
    when the query is idle for ``heartbeat`` seconds so proxies keep the
    connection open and client disconnects are noticed.
    """
    queue: asyncio.Queue[T] = asyncio.Queue(maxsize=1)

    def offer(item: T) -> None:
        # Deliveries are full snapshots: a slow client only needs the newest.
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(item)

    query = subscribe(offer)
    try:
        while True:
            try:
                item = await asyncio.wait_for(queue.get(), timeout=heartbeat)
            except TimeoutError:
                if request is not None and await request.is_disconnected():
                    break
                yield ": keep-alive\n\n"
                continue
            yield f"event: {event}\n"
            yield f"data: {json.dumps(encode(item))}\n\n"
    finally:
        await query.aclose()
        logger.debug("SSE stream for %s closed", query.name)


def sse_response(events: AsyncIterator[str]) -> StreamingResponse:
    return StreamingResponse(
        events,
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
