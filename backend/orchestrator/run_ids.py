"""
Identifier generation for stream invocations and conversations.

Rules:
- Ids are opaque strings; nothing parses them.
- Conversation ids are only generated when the client omits one.
"""

from __future__ import annotations

import uuid

from constants import CONVERSATION_ID_PREFIX, STREAM_ID_PREFIX


def _hex12() -> str:
    return uuid.uuid4().hex[:12]


def new_conversation_id() -> str:
    """`conv_<12 hex chars>`"""
    return f"{CONVERSATION_ID_PREFIX}{_hex12()}"


def new_stream_id() -> str:
    """Correlation id for one orchestrator invocation (logs only)."""
    return f"{STREAM_ID_PREFIX}{_hex12()}"
