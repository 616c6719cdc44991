"""
Event sink contract.

The orchestrator writes an ordered sequence of StreamEvents into exactly
one sink per invocation. Sinks own transport framing; the orchestrator
never touches SSE lines or WebSocket frames.

Rules:
- emit() preserves call order.
- emit() raises TransportClosed once the peer is gone; the orchestrator
  treats that as a silent abort (nobody is left to tell).
- close() is idempotent and ends the event sequence for this invocation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from orchestrator.events import StreamEvent


class TransportClosed(Exception):
    """The client side of the transport went away."""


class EventSink(ABC):
    """Abstract destination for one invocation's events."""

    @abstractmethod
    async def emit(self, event: StreamEvent) -> None:
        """
        Deliver one event.

        Raises:
            TransportClosed if the peer disconnected.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """End the event sequence. Safe to call more than once."""
        raise NotImplementedError
