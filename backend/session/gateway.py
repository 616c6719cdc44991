"""
WebSocket session gateway.

Responsibilities:
- One gateway per WebSocket connection
- Queue inbound JSON messages and process them one at a time, in arrival
  order, on a worker task
- Route `synthesize` / `conversation` messages to the orchestrator with a
  WebSocketEventSink
- Answer malformed messages with an `error` frame and keep the socket open
- Cancel in-flight work when the socket goes away

Not responsible for:
- Accepting or closing the socket (see server/routes.py)
- Validation rules (see session/requests.py)
- Streaming logic (see orchestrator/runtime.py)
"""

from __future__ import annotations

import asyncio
import json
from typing import Any
from uuid import uuid4

from fastapi import WebSocket

from observability.logger import log_event
from orchestrator.events import Error
from protocol.sink import TransportClosed
from protocol.websocket import WebSocketEventSink
from session.requests import RequestError
from session.services import AppServices


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _new_connection_id() -> str:
    return f"ws_{uuid4().hex[:12]}"


MESSAGE_SYNTHESIZE = "synthesize"
MESSAGE_CONVERSATION = "conversation"


# ------------------------------------------------------------------
# SessionGateway
# ------------------------------------------------------------------

class SessionGateway:
    """
    One gateway == one WebSocket connection.

    Requests on one socket never overlap: the next message is not looked
    at until the previous invocation has closed its sink.
    """

    def __init__(self, *, services: AppServices, ws: WebSocket) -> None:
        self._services = services
        self._ws = ws
        self.connection_id = _new_connection_id()
        self._inbox: asyncio.Queue[str] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._requests = 0

    async def on_ws_connect(self) -> None:
        """Called once the socket is accepted."""
        self._worker = asyncio.create_task(
            self._run(), name=f"ws-worker-{self.connection_id}"
        )
        log_event({
            "event_type": "WS_CONNECTED",
            "connection_id": self.connection_id,
        })

    async def on_json_message(self, payload: str) -> None:
        """Queue one text frame for sequential processing."""
        await self._inbox.put(payload)

    async def on_binary_message(self, payload: bytes) -> None:
        log_event({
            "event_type": "WS_BINARY_REJECTED",
            "connection_id": self.connection_id,
            "bytes": len(payload),
        }, level="WARN")
        await self._send_error("Binary frames are not supported")

    async def on_ws_disconnect(self, reason: str | None = None) -> None:
        """Cancel queued and in-flight work for this connection."""
        worker, self._worker = self._worker, None
        if worker is not None and not worker.done():
            worker.cancel()
            try:
                await worker
            except asyncio.CancelledError:
                pass

        log_event({
            "event_type": "WS_DISCONNECTED",
            "connection_id": self.connection_id,
            "reason": reason,
            "requests": self._requests,
            "dropped_messages": self._inbox.qsize(),
        })

    # ------------------------------------------------------------------
    # Worker
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while True:
            payload = await self._inbox.get()
            try:
                await self._handle(payload)
            except TransportClosed:
                return
            except Exception as exc:  # pylint: disable=broad-exception-caught
                log_event({
                    "event_type": "WS_REQUEST_FAILED",
                    "connection_id": self.connection_id,
                    "exception": type(exc).__name__,
                    "message": str(exc),
                }, level="ERROR")
                try:
                    await self._send_error(str(exc) or type(exc).__name__)
                except TransportClosed:
                    return

    async def _handle(self, payload: str) -> None:
        try:
            data: Any = json.loads(payload)
        except json.JSONDecodeError as exc:
            log_event({
                "event_type": "JSON_DECODE_ERROR",
                "connection_id": self.connection_id,
                "message": str(exc),
            }, level="WARN")
            await self._send_error("Invalid JSON message")
            return

        message_type = data.get("type") if isinstance(data, dict) else None
        self._requests += 1

        log_event({
            "event_type": "WS_REQUEST",
            "connection_id": self.connection_id,
            "message_type": message_type,
        })

        try:
            if message_type == MESSAGE_SYNTHESIZE:
                await self._synthesize(data)
            elif message_type == MESSAGE_CONVERSATION:
                await self._conversation(data)
            else:
                await self._send_error(f"Unknown message type: {message_type}")
        except RequestError as exc:
            await self._send_error(exc.message)

    async def _synthesize(self, data: dict[str, Any]) -> None:
        request, params = await self._services.prepare_stream(data)
        await self._services.orchestrator.run_batch(
            request.text, params, WebSocketEventSink(self._ws)
        )

    async def _conversation(self, data: dict[str, Any]) -> None:
        request, params = await self._services.prepare_conversation(data)
        await self._services.orchestrator.run_conversation(
            request.conversation_id,
            request.message,
            params,
            WebSocketEventSink(self._ws),
            model=request.model,
            system_prompt=request.system_prompt,
        )

    async def _send_error(self, message: str) -> None:
        """
        Raises:
            TransportClosed if the socket is gone.
        """
        await WebSocketEventSink(self._ws).emit(Error(message=message))
