"""
Static text segmentation for batch synthesis.

Splits a complete document into phrases along paragraph and sentence
boundaries, then greedily packs sentences up to a length cap.

This module contains NO side effects. It is a deterministic function over
the input text and the cap.

Rules:
- Paragraphs are separated by blank lines.
- Sentences end at '.', '!' or '?' followed by whitespace, except after a
  known abbreviation or a single-capital initial ("J. Smith").
- A sentence longer than the cap is kept whole, never truncated.
- max_chars == 0 disables packing: one phrase per sentence.
"""

from __future__ import annotations

import re

from constants import (
    ADDRESS_ABBREVIATIONS,
    CORPORATE_ABBREVIATIONS,
    LATIN_ABBREVIATIONS,
    SEGMENT_DEFAULT_MAX_CHARS,
    TITLE_ABBREVIATIONS,
)

ABBREVIATIONS: tuple[str, ...] = (
    TITLE_ABBREVIATIONS
    + LATIN_ABBREVIATIONS
    + CORPORATE_ABBREVIATIONS
    + ADDRESS_ABBREVIATIONS
)

_PARAGRAPH_SPLIT = re.compile(r"\n\s*\n+")

# One lookbehind per abbreviation: re only accepts fixed-width lookbehinds
_SENTENCE_SPLIT = re.compile(
    "".join(rf"(?<!{re.escape(abbr)})" for abbr in ABBREVIATIONS)
    + r"(?<!\b[A-Z]\.)"
    + r"(?<=[.!?])\s+"
)


def split_paragraphs(text: str) -> list[str]:
    """Split on blank lines; empty paragraphs are dropped."""
    return [p.strip() for p in _PARAGRAPH_SPLIT.split(text) if p.strip()]


def split_sentences(paragraph: str) -> list[str]:
    """Split a paragraph into sentence units; empty units are dropped."""
    return [s.strip() for s in _SENTENCE_SPLIT.split(paragraph) if s.strip()]


def chunk_text(text: str, max_chars: int = SEGMENT_DEFAULT_MAX_CHARS) -> list[str]:
    """
    Split `text` into an ordered list of trimmed, non-empty phrases.

    Sentences are packed greedily: a sentence joins the current phrase
    while len(current) + 1 + len(sentence) <= max_chars, otherwise the
    current phrase is closed and the sentence starts a new one.

    Empty input yields an empty list.
    """
    if max_chars < 0:
        raise ValueError(f"max_chars must be >= 0, got {max_chars}")

    phrases: list[str] = []

    for paragraph in split_paragraphs(text):
        current = ""

        for sentence in split_sentences(paragraph):
            if not current:
                current = sentence
            elif len(current) + 1 + len(sentence) <= max_chars:
                current = f"{current} {sentence}"
            else:
                phrases.append(current)
                current = sentence

        if current:
            phrases.append(current)

    return phrases
