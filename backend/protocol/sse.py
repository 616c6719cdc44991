"""
Server-Sent-Events transport adapter.

The orchestrator runs as its own task and pushes events into an
asyncio.Queue; the response generator drains the queue and yields one
`data: <json>` frame per event (framing done by sse-starlette).

Ordering: single producer, single consumer, FIFO queue.
"""

from __future__ import annotations

import asyncio
from typing import Any, AsyncIterator

from orchestrator.events import StreamEvent
from protocol.codec import dumps_event
from protocol.sink import EventSink, TransportClosed

_CLOSE = object()


class SseEventSink(EventSink):
    """Queue-backed sink consumed by an EventSourceResponse generator."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False
        self._detached = False

    async def emit(self, event: StreamEvent) -> None:
        if self._detached:
            raise TransportClosed("sse client disconnected")
        if self._closed:
            raise TransportClosed("sse stream already closed")
        await self._queue.put(event)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_CLOSE)

    def detach(self) -> None:
        """Mark the consumer as gone; later emit() calls raise TransportClosed."""
        self._detached = True

    async def frames(self) -> AsyncIterator[dict[str, str]]:
        """Yield sse-starlette frame dicts until close() is observed."""
        while True:
            item = await self._queue.get()
            if item is _CLOSE:
                return
            yield {"data": dumps_event(item)}
