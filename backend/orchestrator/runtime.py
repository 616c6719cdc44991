"""
Streaming orchestrator.

Responsibilities:
- Turn one request into an ordered sequence of StreamEvents on one sink
- Batch mode: static segmentation, one synthesis per phrase, silence
  between phrases
- Conversation mode: liveness check, streamed chat, incremental phrase
  detection, one synthesis per detected phrase, history update
- Track and log the invocation state (STREAM_STATE)
- Always close the sink, whatever happens

Non-responsibilities:
- No request validation (see session/requests.py)
- No transport framing (see protocol/)
- No engine access beyond the SynthesisGateway

Ordering guarantees:
- Phrases are synthesized strictly one after another; the audio of
  phrase n is on the sink before phrase n+1 is submitted.
- TextChunk events may run ahead of their audio.

Cancellation:
- Cancelling the task running run_batch/run_conversation stops at the
  next await; no further phrase reaches the engine and an aborted turn
  rolls the conversation history back.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import aclosing
from dataclasses import dataclass, field
from typing import Any, Awaitable

from adapters.llm.base import ChatBackend
from adapters.tts.gateway import SynthesisError, SynthesisGateway
from constants import (
    INTER_PHRASE_SILENCE_S,
    OLLAMA_UNAVAILABLE_MESSAGE,
    STREAM_SEGMENT_MAX_CHARS,
)
from context.conversation import ConversationStore, Message
from context.serialization import turn_opening
from observability.logger import log_event
from observability.metrics import elapsed_ms, observe_ms
from orchestrator.chunking import (
    DEFAULT_POLICY,
    BoundaryPolicy,
    Phrase,
    PhraseBoundaryDetector,
)
from orchestrator.enums.mode import StreamMode
from orchestrator.enums.state import TERMINAL_STATES, StreamState
from orchestrator.events import (
    Chunk,
    ConversationEnd,
    ConversationStart,
    End,
    Error,
    Start,
    StreamEvent,
    TextChunk,
)
from orchestrator.run_ids import new_stream_id
from orchestrator.segmenter import chunk_text
from protocol.sink import EventSink, TransportClosed


@dataclass(frozen=True)
class SynthesisParams:
    """Per-request synthesis settings, already validated and resolved."""
    style: Any
    total_steps: int
    speed: float


@dataclass
class StreamRun:
    """
    Mutable bookkeeping for one invocation.

    Only the orchestrator mutates it; state changes go through
    transition() so every change is logged.
    """
    mode: StreamMode
    stream_id: str = field(default_factory=new_stream_id)
    state: StreamState = StreamState.IDLE
    phrases_emitted: int = 0
    total_duration: float = 0.0

    def transition(self, to: StreamState, **details: Any) -> None:
        if self.state in TERMINAL_STATES:
            return
        log_event({
            "event_type": "STREAM_STATE",
            "stream_id": self.stream_id,
            "mode": self.mode.value,
            "from": self.state.value,
            "to": to.value,
            **details,
        }, level="DEBUG" if to in (StreamState.SYNTHESIZING, StreamState.EMITTED) else "INFO")
        self.state = to


class StreamOrchestrator:
    """
    Process-wide orchestrator; one call of run_batch/run_conversation per
    request or WebSocket message.

    Collaborators are injected so tests can substitute fakes.
    """

    def __init__(
        self,
        *,
        gateway: SynthesisGateway,
        store: ConversationStore,
        chat: ChatBackend,
        system_prompt: str,
        policy: BoundaryPolicy = DEFAULT_POLICY,
        silence_s: float = INTER_PHRASE_SILENCE_S,
        segment_max_chars: int = STREAM_SEGMENT_MAX_CHARS,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._chat = chat
        self._system_prompt = system_prompt
        self._policy = policy
        self._silence_s = silence_s
        self._segment_max_chars = segment_max_chars

    # ------------------------------------------------------------------
    # Batch mode
    # ------------------------------------------------------------------

    async def run_batch(
        self,
        text: str,
        params: SynthesisParams,
        sink: EventSink,
        *,
        run: StreamRun | None = None,
    ) -> StreamRun:
        run = run or StreamRun(mode=StreamMode.BATCH)
        await self._guarded(run, sink, self._batch(text, params, sink, run))
        return run

    async def _batch(
        self,
        text: str,
        params: SynthesisParams,
        sink: EventSink,
        run: StreamRun,
    ) -> None:
        run.transition(StreamState.STARTED, chars=len(text))
        run.transition(StreamState.SEGMENTING)
        phrases = chunk_text(text, self._segment_max_chars)
        total = len(phrases)

        await sink.emit(Start(total_chunks=total))

        for index, phrase_text in enumerate(phrases, start=1):
            phrase = Phrase(index=index, text=phrase_text)
            # Gaps only ever separate two phrases that were actually spoken
            await self._speak(
                phrase, params, sink, run,
                total_chunks=total,
                lead_silence=run.phrases_emitted > 0,
            )

        await sink.emit(End(total_duration=run.total_duration, total_chunks=run.phrases_emitted))
        run.transition(StreamState.COMPLETED, phrases=run.phrases_emitted)

    # ------------------------------------------------------------------
    # Conversation mode
    # ------------------------------------------------------------------

    async def run_conversation(
        self,
        conversation_id: str,
        message: str,
        params: SynthesisParams,
        sink: EventSink,
        *,
        model: str | None = None,
        system_prompt: str | None = None,
        run: StreamRun | None = None,
    ) -> StreamRun:
        run = run or StreamRun(mode=StreamMode.CONVERSATION)
        await self._guarded(
            run,
            sink,
            self._conversation(
                conversation_id,
                message,
                params,
                sink,
                run,
                model=model,
                system_prompt=system_prompt or self._system_prompt,
            ),
        )
        return run

    async def _conversation(
        self,
        conversation_id: str,
        message: str,
        params: SynthesisParams,
        sink: EventSink,
        run: StreamRun,
        *,
        model: str | None,
        system_prompt: str,
    ) -> None:
        run.transition(StreamState.STARTED, conversation_id=conversation_id)
        await sink.emit(ConversationStart(conversation_id=conversation_id))

        if not await self._chat.health():
            log_event({
                "event_type": "LLM_UNAVAILABLE",
                "stream_id": run.stream_id,
                "conversation_id": conversation_id,
            }, level="WARN")
            await sink.emit(Error(message=OLLAMA_UNAVAILABLE_MESSAGE))
            run.transition(StreamState.ABORTED, reason="llm_unavailable")
            return

        async with self._store.turn(conversation_id):
            generation = self._store.generation(conversation_id)
            snapshot = self._store.get_or_create(conversation_id)
            for opening in turn_opening(snapshot, system_prompt=system_prompt, user_text=message):
                self._store.append(conversation_id, opening)

            committed = False
            try:
                full_response = await self._stream_turn(
                    self._store.get(conversation_id), params, sink, run, model=model
                )
                if self._store.generation(conversation_id) == generation:
                    self._store.append(
                        conversation_id, Message(role="assistant", content=full_response)
                    )
                else:
                    self._log_deleted_during_turn(run, conversation_id)
                committed = True
            finally:
                if not committed:
                    self._rollback(run, conversation_id, snapshot, generation)

        await sink.emit(ConversationEnd(full_response=full_response))
        await sink.emit(End(total_duration=run.total_duration, total_chunks=run.phrases_emitted))
        run.transition(StreamState.COMPLETED, phrases=run.phrases_emitted)

    async def _stream_turn(
        self,
        messages: list[Message],
        params: SynthesisParams,
        sink: EventSink,
        run: StreamRun,
        *,
        model: str | None,
    ) -> str:
        """Stream one assistant response; returns the full text."""
        run.transition(StreamState.DETECTING, messages=len(messages))
        detector = PhraseBoundaryDetector(self._policy)
        parts: list[str] = []
        done = False
        start_ns = time.monotonic_ns()

        async with aclosing(self._chat.stream_chat(messages, model=model)) as fragments:
            async for fragment in fragments:
                if fragment.content:
                    if not parts:
                        observe_ms("llm_first_token_ms", elapsed_ms(start_ns), stream_id=run.stream_id)
                    parts.append(fragment.content)
                    await sink.emit(TextChunk(text=fragment.content, full_text="".join(parts)))

                    for phrase in detector.feed(fragment.content):
                        await self._speak(phrase, params, sink, run, with_text=True)

                if fragment.done:
                    done = True
                    break

        if not done:
            log_event({
                "event_type": "LLM_STREAM_ENDED_WITHOUT_DONE",
                "stream_id": run.stream_id,
                "chars": sum(len(p) for p in parts),
            }, level="WARN")

        tail = detector.flush()
        if tail is not None:
            await self._speak(tail, params, sink, run, with_text=True)

        observe_ms(
            "llm_stream_ms",
            elapsed_ms(start_ns),
            stream_id=run.stream_id,
            details={"fragments_chars": sum(len(p) for p in parts)},
        )
        return "".join(parts)

    def _rollback(
        self,
        run: StreamRun,
        conversation_id: str,
        snapshot: list[Message],
        generation: int,
    ) -> None:
        """Restore the pre-turn history unless it was deleted meanwhile."""
        if self._store.generation(conversation_id) != generation:
            self._log_deleted_during_turn(run, conversation_id)
            return

        self._store.replace(conversation_id, snapshot)
        log_event({
            "event_type": "CONVERSATION_TURN_ROLLED_BACK",
            "stream_id": run.stream_id,
            "conversation_id": conversation_id,
            "restored_messages": len(snapshot),
        }, level="WARN")

    @staticmethod
    def _log_deleted_during_turn(run: StreamRun, conversation_id: str) -> None:
        log_event({
            "event_type": "CONVERSATION_DELETED_DURING_TURN",
            "stream_id": run.stream_id,
            "conversation_id": conversation_id,
        }, level="WARN")

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    async def _speak(
        self,
        phrase: Phrase,
        params: SynthesisParams,
        sink: EventSink,
        run: StreamRun,
        *,
        total_chunks: int | None = None,
        with_text: bool = False,
        lead_silence: bool = False,
    ) -> float | None:
        """
        Synthesize and emit one phrase.

        With `lead_silence`, a silence segment is emitted right before the
        phrase, and only if synthesis succeeded.

        Returns the phrase duration, or None if synthesis failed (an Error
        event tagged with the phrase index has been emitted instead).
        """
        run.transition(StreamState.SYNTHESIZING, index=phrase.index)
        try:
            audio = await self._gateway.synthesize(
                phrase,
                params.style,
                total_steps=params.total_steps,
                speed=params.speed,
                stream_id=run.stream_id,
                with_text=with_text,
            )
        except SynthesisError as exc:
            await sink.emit(Error(message=str(exc), index=exc.index))
            return None

        if lead_silence:
            silence = self._gateway.silence(self._silence_s)
            await sink.emit(silence)
            run.total_duration += silence.duration

        if not with_text:
            await sink.emit(Chunk(
                index=audio.index,
                duration=audio.duration,
                sample_rate=audio.sample_rate,
                total_chunks=total_chunks,
            ))
        await sink.emit(audio)

        run.phrases_emitted += 1
        run.total_duration += audio.duration
        run.transition(StreamState.EMITTED, index=phrase.index)
        return audio.duration

    async def _guarded(self, run: StreamRun, sink: EventSink, body: Awaitable[None]) -> None:
        """
        Run `body`, downgrade unexpected failures to an Error event and
        always close the sink.
        """
        try:
            await body
        except TransportClosed as exc:
            log_event({
                "event_type": "STREAM_CLIENT_GONE",
                "stream_id": run.stream_id,
                "message": str(exc),
            })
            run.transition(StreamState.ABORTED, reason="client_gone")
        except asyncio.CancelledError:
            run.transition(StreamState.ABORTED, reason="cancelled")
            raise
        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "STREAM_FAILED",
                "stream_id": run.stream_id,
                "mode": run.mode.value,
                "exception": type(exc).__name__,
                "message": str(exc),
            }, level="ERROR")
            run.transition(StreamState.ABORTED, reason=type(exc).__name__)
            await _emit_quietly(sink, Error(message=str(exc) or type(exc).__name__))
        finally:
            await sink.close()


async def _emit_quietly(sink: EventSink, event: StreamEvent) -> None:
    try:
        await sink.emit(event)
    except TransportClosed:
        pass
