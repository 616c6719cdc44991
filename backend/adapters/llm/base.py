"""
Chat backend contract.

Purpose:
- Define the interface the orchestrator uses to talk to a streaming
  language-model chat backend.
- Keep all orchestration, phrasing and history management OUT of the
  adapter.

Rules:
- This file contains NO logic.
- No retries.
- No chunking.
- No knowledge of synthesis, transports or the session store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Sequence

from context.conversation import Message


class ChatBackendUnavailable(Exception):
    """The backend failed its liveness check (not running / unreachable)."""


class ChatBackendError(Exception):
    """The backend failed mid-request (HTTP status, transport, timeout)."""


@dataclass(frozen=True)
class ChatFragment:
    """
    One decoded upstream line.

    content is the incremental assistant text (may be empty).
    done marks the terminal fragment; its content is still meaningful.
    """
    content: str
    done: bool = False


class ChatBackend(ABC):
    """
    Abstract streaming chat backend.

    The adapter is a *dumb pipe*:
    messages -> vendor -> fragments.

    Orchestrator responsibilities (NOT here):
    - When to start and when to cancel
    - Phrasing the streamed text
    - Updating conversation history
    """

    @abstractmethod
    async def health(self) -> bool:
        """
        Liveness check.

        Contract:
        - Returns True if the backend answers, False otherwise.
        - Must NOT raise for connection problems.
        """
        raise NotImplementedError

    @abstractmethod
    async def list_models(self) -> list[str]:
        """
        Names of models the backend can serve.

        Raises:
            ChatBackendUnavailable if the backend cannot be reached.
        """
        raise NotImplementedError

    @abstractmethod
    def stream_chat(
        self,
        messages: Sequence[Message],
        *,
        model: str | None = None,
    ) -> AsyncIterator[ChatFragment]:
        """
        Stream one assistant response for `messages`.

        Contract:
        - Yields fragments in upstream order.
        - At most one fragment has done=True and it is the last one.
        - Malformed upstream lines are skipped, never raised.
        - Must NOT retry internally.

        Raises:
            ChatBackendError on HTTP or transport failure.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release connections. Default: nothing to release."""
        return None
