"""
Server-Sent Events for live queries.

Each stream holds exactly one Firestore subscription. The subscription is
opened when the stream starts and always released when the client disconnects
or the response generator is closed.
"""

import asyncio
import json
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, List, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import StreamingResponse

from app.services.firestore_service import Unsubscribe
from config import STREAM_KEEPALIVE_SECONDS

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

Subscribe = Callable[[Callable[[List[Any]], None]], Unsubscribe]
Transform = Callable[[List[Any]], Awaitable[Any]]


async def stream_subscription(
    request: Request,
    subscribe: Subscribe,
    transform: Optional[Transform] = None,
    keepalive_seconds: float = STREAM_KEEPALIVE_SECONDS,
) -> AsyncIterator[str]:
    """
    Yield SSE frames for every snapshot delivered by a subscription.

    Snapshot callbacks arrive on SDK threads, so they are handed to the event
    loop through a queue.
    """
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def _on_update(items: List[Any]) -> None:
        loop.call_soon_threadsafe(queue.put_nowait, items)

    unsubscribe = subscribe(_on_update)
    try:
        while True:
            if await request.is_disconnected():
                logger.info(f"Client disconnected from {request.url.path}")
                break

            try:
                items = await asyncio.wait_for(queue.get(), timeout=keepalive_seconds)
            except asyncio.TimeoutError:
                yield ": keep-alive\n\n"
                continue

            if transform is not None:
                items = await transform(items)
            yield f"data: {json.dumps(jsonable_encoder(items))}\n\n"
    finally:
        unsubscribe()


def sse_response(
    request: Request, subscribe: Subscribe, transform: Optional[Transform] = None
) -> StreamingResponse:
    return StreamingResponse(
        stream_subscription(request, subscribe, transform),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
