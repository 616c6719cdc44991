"""
Conversation session store.

Responsibilities:
- Map conversation ids to ordered message histories
- Create histories lazily (empty, no system message)
- Serialize turns per conversation id (one turn at a time per key)

Non-responsibilities:
- No system-prompt injection (the orchestrator decides that)
- No LLM formatting (see context/serialization.py)
- No eviction: histories live until deleted or the process exits.
  Unbounded growth is a known limit; a capacity- or age-based eviction
  policy is the required follow-up before long-running deployments.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Iterable, Literal

from observability.logger import log_event


Role = Literal["system", "user", "assistant"]
ROLES: tuple[str, ...] = ("system", "user", "assistant")


@dataclass(frozen=True)
class Message:
    """Single chat message. Immutable once appended."""
    role: Role
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"unknown role {self.role!r}")


class ConversationStore:
    """
    In-memory conversation histories with per-id turn locks.

    Mutating methods never yield, so each one is atomic on the event loop.
    A whole turn (read history, append user, stream, append assistant)
    spans many awaits and must run inside `turn(conversation_id)`.

    Invariants:
    - Messages are stored in chronological order
    - Readers receive copies; stored lists are never handed out
    """

    def __init__(self) -> None:
        self._sessions: dict[str, list[Message]] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._generations: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_or_create(self, conversation_id: str) -> list[Message]:
        """Return the history for `conversation_id`, creating an empty one."""
        history = self._sessions.get(conversation_id)
        if history is None:
            history = self._sessions[conversation_id] = []
            log_event({
                "event_type": "CONVERSATION_CREATED",
                "conversation_id": conversation_id,
            }, level="DEBUG")
        return list(history)

    def get(self, conversation_id: str) -> list[Message]:
        """Return the history without creating it (empty if unknown)."""
        return list(self._sessions.get(conversation_id, ()))

    def append(self, conversation_id: str, message: Message) -> None:
        self._sessions.setdefault(conversation_id, []).append(message)

    def replace(self, conversation_id: str, messages: Iterable[Message]) -> None:
        self._sessions[conversation_id] = list(messages)

    def delete(self, conversation_id: str) -> bool:
        """
        Drop the history. Idempotent.

        Returns True if a history existed.
        """
        existed = self._sessions.pop(conversation_id, None) is not None
        self._generations[conversation_id] = self.generation(conversation_id) + 1

        lock = self._locks.get(conversation_id)
        if lock is not None and not lock.locked():
            del self._locks[conversation_id]

        if existed:
            log_event({
                "event_type": "CONVERSATION_DELETED",
                "conversation_id": conversation_id,
            })
        return existed

    def generation(self, conversation_id: str) -> int:
        """
        Counter bumped by every delete() of `conversation_id`.

        A turn captures it when it starts; a different value at the end
        means the history was deleted meanwhile and must not be written.
        """
        return self._generations.get(conversation_id, 0)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    # ------------------------------------------------------------------
    # Turn serialization
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def turn(self, conversation_id: str) -> AsyncIterator[None]:
        """
        Hold the turn lock for `conversation_id`.

        Turns on distinct ids run concurrently; turns on the same id run
        one after another in arrival order.
        """
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = self._locks[conversation_id] = asyncio.Lock()

        if lock.locked():
            log_event({
                "event_type": "CONVERSATION_TURN_QUEUED",
                "conversation_id": conversation_id,
            }, level="DEBUG")

        async with lock:
            yield
