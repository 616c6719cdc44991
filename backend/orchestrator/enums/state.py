"""
Stream invocation state enumeration.

Rules:
- This enum defines ONLY the states of one orchestrator invocation.
- No behavior, no helper methods, no side effects.
- Transitions are performed exclusively by orchestrator/runtime.py.
"""

from __future__ import annotations

from enum import Enum


class StreamState(str, Enum):
    """
    Lifecycle of a single stream invocation.

    IDLE -> STARTED -> (SEGMENTING | DETECTING)
         -> per phrase: SYNTHESIZING -> EMITTED
         -> COMPLETED | ABORTED
    """

    IDLE = "IDLE"
    STARTED = "STARTED"
    SEGMENTING = "SEGMENTING"
    DETECTING = "DETECTING"
    SYNTHESIZING = "SYNTHESIZING"
    EMITTED = "EMITTED"
    COMPLETED = "COMPLETED"
    ABORTED = "ABORTED"


TERMINAL_STATES = frozenset({StreamState.COMPLETED, StreamState.ABORTED})
