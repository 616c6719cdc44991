"""
Stream mode enumeration.

Modes are orthogonal to states:
- State answers: "Where is this invocation in its lifecycle?"
- Mode answers:  "Where does its text come from?"
"""

from __future__ import annotations

from enum import Enum


class StreamMode(str, Enum):
    """
    BATCH:
        Whole text known upfront; static segmenter, silence between phrases.

    CONVERSATION:
        Text streamed from the chat backend; incremental boundary detector,
        no inserted silence.
    """

    BATCH = "BATCH"
    CONVERSATION = "CONVERSATION"
