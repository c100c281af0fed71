from __future__ import annotations

import asyncio
import logging
from typing import Protocol

from uploader.schemas.upload import ProgressEvent


log = logging.getLogger(__name__)

_CLOSED = object()


class ProgressSink(Protocol):
    def emit(self, bytes_received: int, bytes_expected: int) -> None: ...


class NullChannel:
    def emit(self, bytes_received: int, bytes_expected: int) -> None:
        return None


class ProgressChannel:
    """Progress sink bound to one upload session."""

    def __init__(self, hub: "ProgressHub", session_id: str):
        self.hub = hub
        self.session_id = session_id

    def emit(self, bytes_received: int, bytes_expected: int) -> None:
        event = ProgressEvent(bytesReceived=int(bytes_received), bytesExpected=int(bytes_expected))
        self.hub.publish(self.session_id, event)


class ProgressHub:
    """Registry of real-time subscribers keyed by upload session id.

    Each session has at most one subscriber; a new connection for the same
    session replaces the previous one. Sessions never see each other's events.
    """

    def __init__(self, *, queue_size: int = 256):
        self.queue_size = int(queue_size)
        self._subscribers: dict[str, asyncio.Queue] = {}

    def subscribe(self, session_id: str) -> asyncio.Queue:
        previous = self._subscribers.get(session_id)
        if previous is not None:
            self._offer(previous, _CLOSED)
        q: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self._subscribers[session_id] = q
        log.info("progress subscriber connected session=%s active=%s", session_id, len(self._subscribers))
        return q

    def unsubscribe(self, session_id: str, queue: asyncio.Queue) -> None:
        # A replaced subscriber must not evict its successor.
        if self._subscribers.get(session_id) is queue:
            del self._subscribers[session_id]
            log.info("progress subscriber disconnected session=%s active=%s", session_id, len(self._subscribers))

    def channel(self, session_id: str | None) -> ProgressSink:
        sid = str(session_id or "").strip()
        if not sid:
            return NullChannel()
        return ProgressChannel(self, sid)

    def publish(self, session_id: str, event: ProgressEvent) -> bool:
        q = self._subscribers.get(session_id)
        if q is None:
            return False
        return self._offer(q, event)

    @staticmethod
    def _offer(q: asyncio.Queue, item: object) -> bool:
        try:
            q.put_nowait(item)
            return True
        except asyncio.QueueFull:
            # Progress is lossy; a slow reader only misses intermediate snapshots.
            return False

    @staticmethod
    def is_closed(item: object) -> bool:
        return item is _CLOSED


hub = ProgressHub()
