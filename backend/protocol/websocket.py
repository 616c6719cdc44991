"""
WebSocket transport adapter.

Each event becomes one JSON text frame with the same payload the SSE
transport puts on a `data:` line. One socket carries the events of many
sequential invocations, so close() does not close the socket; the
gateway owns the socket lifecycle.
"""

from __future__ import annotations

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from orchestrator.events import StreamEvent
from protocol.codec import dumps_event
from protocol.sink import EventSink, TransportClosed


class WebSocketEventSink(EventSink):
    """Sink writing JSON text frames to an accepted WebSocket."""

    def __init__(self, ws: WebSocket) -> None:
        self._ws = ws
        self._closed = False

    async def emit(self, event: StreamEvent) -> None:
        if self._closed or self._ws.application_state is not WebSocketState.CONNECTED:
            raise TransportClosed("websocket not connected")

        try:
            await self._ws.send_text(dumps_event(event))
        except (WebSocketDisconnect, RuntimeError, OSError) as exc:
            self._closed = True
            raise TransportClosed(f"{type(exc).__name__}: {exc}") from exc

    async def close(self) -> None:
        self._closed = True
