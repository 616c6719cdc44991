"""
Conversation serialization.

Responsibilities:
- Convert stored messages into the role/content wire format used by the
  chat backend and by GET /conversation/{id}
- Decide the messages that open a turn (system prompt on first turn)

Non-responsibilities:
- No storage
- No locking (callers hold the store's turn lock)
"""

from __future__ import annotations

from typing import Sequence

from context.conversation import Message


def serialize_messages(messages: Sequence[Message]) -> list[dict[str, str]]:
    """
    Output format:
    [
        {"role": "system", "content": "..."},
        {"role": "user", "content": "..."},
        {"role": "assistant", "content": "..."},
    ]
    """
    return [{"role": m.role, "content": m.content} for m in messages]


def turn_opening(
    history: Sequence[Message],
    *,
    system_prompt: str,
    user_text: str,
) -> list[Message]:
    """
    Messages to append before streaming a turn.

    Rules:
    - An empty history gets the system prompt first
    - The user message always comes last
    """
    opening: list[Message] = []
    if not history:
        opening.append(Message(role="system", content=system_prompt))
    opening.append(Message(role="user", content=user_text))
    return opening
