"""
Process-wide service container.

Responsibilities:
- Own the shared collaborators (style library, conversation store, chat
  backend, synthesis gateway, orchestrator)
- Track engine readiness (the engine is attached after startup)
- Turn raw request bodies into validated requests plus resolved
  synthesis parameters, raising RequestError for every precondition

Non-responsibilities:
- No transport handling
- No streaming (see orchestrator/runtime.py)

One instance per process, stored on app.state.services.
"""

from __future__ import annotations

from typing import Any

from adapters.llm.base import ChatBackend
from adapters.tts.base import SynthesisEngine
from adapters.tts.gateway import SynthesisGateway
from adapters.tts.loader import EngineNotReadyError
from adapters.tts.styles import StyleLoadError, StyleNotFoundError, VoiceStyleLibrary
from config import AppConfig
from context.conversation import ConversationStore
from observability.logger import log_event
from orchestrator.runtime import StreamOrchestrator, SynthesisParams
from session.requests import (
    ConversationRequest,
    RequestError,
    StreamRequest,
    parse_conversation_request,
    parse_stream_request,
)


class AppServices:
    """Shared collaborators for all connections of one process."""

    def __init__(
        self,
        *,
        config: AppConfig,
        styles: VoiceStyleLibrary,
        store: ConversationStore,
        chat: ChatBackend,
    ) -> None:
        self.config = config
        self.styles = styles
        self.store = store
        self.chat = chat
        self._orchestrator: StreamOrchestrator | None = None

    # ------------------------------------------------------------------
    # Engine readiness
    # ------------------------------------------------------------------

    @property
    def tts_loaded(self) -> bool:
        return self._orchestrator is not None

    def attach_engine(self, engine: SynthesisEngine) -> None:
        """Make the engine available; requests stop answering 503."""
        self._orchestrator = StreamOrchestrator(
            gateway=SynthesisGateway(engine),
            store=self.store,
            chat=self.chat,
            system_prompt=self.config.system_prompt,
        )
        log_event({
            "event_type": "TTS_ENGINE_ATTACHED",
            "sample_rate": engine.sample_rate,
        })

    @property
    def orchestrator(self) -> StreamOrchestrator:
        """
        Raises:
            EngineNotReadyError until attach_engine() has run.
        """
        if self._orchestrator is None:
            raise EngineNotReadyError("TTS not initialized")
        return self._orchestrator

    # ------------------------------------------------------------------
    # Request preparation
    # ------------------------------------------------------------------

    async def prepare_stream(self, body: Any) -> tuple[StreamRequest, SynthesisParams]:
        """
        Raises:
            RequestError: 503 engine not ready, 400 invalid body or unknown
            voice, 500 style load failure.
        """
        self.require_engine()
        request = parse_stream_request(body, config=self.config)
        params = await self._resolve_params(request.voice, request.steps, request.speed)
        return request, params

    async def prepare_conversation(
        self, body: Any
    ) -> tuple[ConversationRequest, SynthesisParams]:
        """Same preconditions and status codes as prepare_stream()."""
        self.require_engine()
        request = parse_conversation_request(body, config=self.config)
        params = await self._resolve_params(request.voice, request.steps, request.speed)
        return request, params

    def require_engine(self) -> None:
        if self._orchestrator is None:
            raise RequestError(503, "TTS not initialized")

    async def _resolve_params(self, voice: str, steps: int, speed: float) -> SynthesisParams:
        try:
            style = await self.styles.load(voice)
        except StyleNotFoundError as exc:
            raise RequestError(400, f"Voice style not found: {voice}") from exc
        except StyleLoadError as exc:
            log_event({
                "event_type": "VOICE_STYLE_LOAD_FAILED",
                "voice": voice,
                "message": str(exc),
            }, level="ERROR")
            raise RequestError(500, f"Failed to load voice style: {exc}") from exc

        return SynthesisParams(style=style, total_steps=steps, speed=speed)

    async def aclose(self) -> None:
        await self.chat.aclose()
