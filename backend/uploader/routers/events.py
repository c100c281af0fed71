from __future__ import annotations

import asyncio

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from uploader.services.progress import hub


router = APIRouter(prefix="/uploads", tags=["uploads"])

KEEPALIVE_SECONDS = 15.0
EVENT_NAME = "upload"


async def event_generator(request: Request, session_id: str, queue: asyncio.Queue):
    """Relay progress events for one session as SSE until the client leaves."""
    try:
        yield ": connected\n\n"
        while not await request.is_disconnected():
            try:
                item = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
            except asyncio.TimeoutError:
                yield ": keepalive\n\n"
                continue
            if hub.is_closed(item):
                break
            yield f"event: {EVENT_NAME}\ndata: {item.model_dump_json()}\n\n"
    finally:
        hub.unsubscribe(session_id, queue)


@router.get("/events/{session_id}")
async def upload_events(request: Request, session_id: str):
    queue = hub.subscribe(session_id)
    return StreamingResponse(
        event_generator(request, session_id, queue),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
