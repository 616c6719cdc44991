"""
Route registration.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Wire SSE responses and WebSocket gateways to the orchestrator
- Pull dependencies from app.state

Cancellation:
- SSE: the orchestrator runs as its own task; when the response
  generator is closed (client gone) the task is cancelled.
- WebSocket: the gateway cancels its worker on disconnect.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Coroutine

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from adapters.llm.base import ChatBackendUnavailable
from context.serialization import serialize_messages
from observability.logger import log_event
from protocol.sse import SseEventSink
from session.gateway import SessionGateway
from session.requests import RequestError
from session.services import AppServices

SSE_HEADERS = {"Cache-Control": "no-cache"}


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @app.get("/health")
    async def health(request: Request) -> dict[str, Any]:  # pyright: ignore[reportUnusedFunction]
        services: AppServices = request.app.state.services
        return {
            "status": "ok",
            "ttsLoaded": services.tts_loaded,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    @app.get("/voices")
    async def voices(request: Request) -> Any:  # pyright: ignore[reportUnusedFunction]
        services: AppServices = request.app.state.services
        try:
            names = await asyncio.to_thread(services.styles.list_voices)
        except OSError as exc:
            log_event({
                "event_type": "VOICES_LIST_FAILED",
                "message": str(exc),
            }, level="ERROR")
            return JSONResponse(status_code=500, content={"error": str(exc)})
        return {"voices": names}

    @app.get("/models")
    async def models(request: Request) -> Any:  # pyright: ignore[reportUnusedFunction]
        services: AppServices = request.app.state.services
        try:
            names = await services.chat.list_models()
        except ChatBackendUnavailable as exc:
            log_event({
                "event_type": "MODELS_LIST_FAILED",
                "message": str(exc),
            }, level="WARN")
            return JSONResponse(status_code=503, content={"error": str(exc)})
        return {"models": names}

    # ------------------------------------------------------------------
    # Streaming (SSE)
    # ------------------------------------------------------------------

    @app.post("/stream")
    async def stream(request: Request) -> EventSourceResponse:  # pyright: ignore[reportUnusedFunction]
        services: AppServices = request.app.state.services
        services.require_engine()
        body = await _json_body(request)
        parsed, params = await services.prepare_stream(body)
        orchestrator = services.orchestrator

        return _sse(lambda sink: orchestrator.run_batch(parsed.text, params, sink))

    @app.post("/conversation")
    async def conversation(request: Request) -> EventSourceResponse:  # pyright: ignore[reportUnusedFunction]
        services: AppServices = request.app.state.services
        services.require_engine()
        body = await _json_body(request)
        parsed, params = await services.prepare_conversation(body)
        orchestrator = services.orchestrator

        return _sse(lambda sink: orchestrator.run_conversation(
            parsed.conversation_id,
            parsed.message,
            params,
            sink,
            model=parsed.model,
            system_prompt=parsed.system_prompt,
        ))

    # ------------------------------------------------------------------
    # Conversation history
    # ------------------------------------------------------------------

    @app.get("/conversation/{conversation_id}")
    async def get_conversation(  # pyright: ignore[reportUnusedFunction]
        conversation_id: str, request: Request
    ) -> dict[str, Any]:
        services: AppServices = request.app.state.services
        history = services.store.get(conversation_id)
        return {
            "conversationId": conversation_id,
            "messages": serialize_messages(history),
        }

    @app.delete("/conversation/{conversation_id}")
    async def delete_conversation(  # pyright: ignore[reportUnusedFunction]
        conversation_id: str, request: Request
    ) -> dict[str, Any]:
        services: AppServices = request.app.state.services
        services.store.delete(conversation_id)
        return {"success": True, "conversationId": conversation_id}

    # ------------------------------------------------------------------
    # WebSocket
    # ------------------------------------------------------------------

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket) -> None:  # pyright: ignore[reportUnusedFunction]
        await ws.accept()

        gateway = SessionGateway(services=ws.app.state.services, ws=ws)
        await gateway.on_ws_connect()

        try:
            while True:
                msg = await ws.receive()

                if msg["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(code=msg.get("code", 1000))

                if msg.get("text") is not None:
                    await gateway.on_json_message(msg["text"])
                elif msg.get("bytes") is not None:
                    await gateway.on_binary_message(msg["bytes"])

        except WebSocketDisconnect:
            await gateway.on_ws_disconnect(reason="client_disconnect")

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "connection_id": gateway.connection_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            }, level="ERROR")
            await gateway.on_ws_disconnect(reason="server_error")


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

async def _json_body(request: Request) -> Any:
    """
    Raises:
        RequestError(400) if the body is not valid JSON.
    """
    try:
        return await request.json()
    except ValueError as exc:
        raise RequestError(400, "Invalid JSON body") from exc


def _sse(run: Callable[[SseEventSink], Coroutine[Any, Any, Any]]) -> EventSourceResponse:
    """Start `run` against a fresh SSE sink and stream its frames."""
    sink = SseEventSink()

    async def event_publisher() -> AsyncIterator[dict[str, str]]:
        task = asyncio.create_task(run(sink))
        try:
            async for frame in sink.frames():
                yield frame
        finally:
            sink.detach()
            if not task.done():
                task.cancel()

    return EventSourceResponse(event_publisher(), headers=SSE_HEADERS)
