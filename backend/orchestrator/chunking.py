"""
Incremental phrase boundary detection for streamed LLM text.

`evaluate_chunk()` is PURE: a deterministic function over the current
buffer and a BoundaryPolicy. `PhraseBoundaryDetector` owns the mutable
`pending` buffer for exactly one streaming request and applies the pure
function repeatedly.

Cascade (first matching rule wins, re-applied to the remainder):

    1. SENTENCE      '.', '!' or '?' followed by whitespace or end of
                     buffer. Always eligible, except a '.' at the
                     very end of the buffer after a digit or inside a
                     partial abbreviation ("3.", "e."), which waits
                     for more text.
    2. STRONG_PUNCT  ';' or ':' followed by whitespace, cut point
                     >= min_chars * 0.7.
    3. WORD          last whitespace once len >= min_chars, boundary
                     position >= min_chars * 0.8.
    4. COMMA         last ',' once len >= 2 * min_chars, cut point
                     >= min_chars * 1.3.
    5. FORCED        len >= max_chars: last whitespace before the cap if
                     it sits at or past min_chars, else (or once len
                     exceeds 1.3 * max_chars) cut exactly at max_chars.

Rules 3 and 4 only consider cut points within max_chars.

IMPORTANT CONTRACT WITH THE ORCHESTRATOR:
- feed() may return several phrases; they are already in output order.
- flush() must be called exactly once, when upstream signals completion.
- `pending` never exceeds max_chars * 1.3 after feed() returns.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from constants import (
    COMMA_CUT_RATIO,
    COMMA_TRIGGER_RATIO,
    LATIN_ABBREVIATIONS,
    OVERFLOW_RATIO,
    PHRASE_MAX_CHARS,
    PHRASE_MIN_CHARS,
    STRONG_PUNCT_CUT_RATIO,
    TITLE_ABBREVIATIONS,
    WORD_BOUNDARY_CUT_RATIO,
)


# =============================================================================
# Policy
# =============================================================================

@dataclass(frozen=True)
class BoundaryPolicy:
    """
    Named thresholds of the boundary cascade.

    All derived thresholds are character positions in the buffer.
    """
    min_chars: int = PHRASE_MIN_CHARS
    max_chars: int = PHRASE_MAX_CHARS
    strong_punct_cut_ratio: float = STRONG_PUNCT_CUT_RATIO
    word_boundary_cut_ratio: float = WORD_BOUNDARY_CUT_RATIO
    comma_trigger_ratio: float = COMMA_TRIGGER_RATIO
    comma_cut_ratio: float = COMMA_CUT_RATIO
    overflow_ratio: float = OVERFLOW_RATIO

    def __post_init__(self) -> None:
        if self.min_chars <= 0 or self.max_chars <= self.min_chars:
            raise ValueError(
                f"need 0 < min_chars < max_chars, got {self.min_chars}/{self.max_chars}"
            )

    @property
    def strong_punct_min_cut(self) -> float:
        return self.min_chars * self.strong_punct_cut_ratio

    @property
    def word_boundary_min_pos(self) -> float:
        return self.min_chars * self.word_boundary_cut_ratio

    @property
    def comma_min_len(self) -> float:
        return self.min_chars * self.comma_trigger_ratio

    @property
    def comma_min_cut(self) -> float:
        return self.min_chars * self.comma_cut_ratio

    @property
    def overflow_len(self) -> float:
        return self.max_chars * self.overflow_ratio


DEFAULT_POLICY = BoundaryPolicy()


class BoundaryRule(str, Enum):
    """Which cascade rule produced a cut."""

    SENTENCE = "SENTENCE"
    STRONG_PUNCT = "STRONG_PUNCT"
    WORD = "WORD"
    COMMA = "COMMA"
    FORCED = "FORCED"


# =============================================================================
# Data
# =============================================================================

@dataclass(frozen=True)
class Phrase:
    """
    A unit of text synthesized as one audio segment.

    index is the 1-based position in the owning request's output order.
    """
    index: int
    text: str


@dataclass(frozen=True)
class ChunkDecision:
    """
    Result of a boundary evaluation.

    If send is False, all other fields are undefined and must be ignored.
    """
    send: bool
    send_text: str | None = None
    remainder: str | None = None
    rule: BoundaryRule | None = None
    forced_mid_word: bool = False


# =============================================================================
# Public API
# =============================================================================

_SENTENCE_END = re.compile(r"[.!?]+[\"'”’)\]]*(?:\s+|\Z)")
_STRONG_PUNCT = re.compile(r"[;:]\s+")
_WHITESPACE = re.compile(r"\s")

_NON_TERMINAL = frozenset(TITLE_ABBREVIATIONS + LATIN_ABBREVIATIONS)


def evaluate_chunk(
    *,
    buffer: str,
    policy: BoundaryPolicy = DEFAULT_POLICY,
) -> ChunkDecision:
    """
    Evaluate whether a phrase should be cut from the front of `buffer`.

    Leading whitespace is ignored; `remainder` starts right after the cut
    (including any whitespace that follows it).
    """
    text = buffer.lstrip()
    if not text:
        return ChunkDecision(send=False)

    for rule, finder in _CASCADE:
        cut = finder(text, policy)
        if cut is not None:
            return _cut(text, cut, rule)

    forced = _forced_cut(text, policy)
    if forced is not None:
        cut, mid_word = forced
        return _cut(text, cut, BoundaryRule.FORCED, forced_mid_word=mid_word)

    return ChunkDecision(send=False)


class PhraseBoundaryDetector:
    """
    Stateful wrapper over evaluate_chunk() for one streaming request.

    Usage:

        detector = PhraseBoundaryDetector()
        async for token in tokens:
            for phrase in detector.feed(token):
                await synthesize(phrase)
        tail = detector.flush()
    """

    def __init__(
        self,
        policy: BoundaryPolicy = DEFAULT_POLICY,
        *,
        start_index: int = 1,
    ) -> None:
        self._policy = policy
        self._pending = ""
        self._next_index = start_index

    @property
    def pending(self) -> str:
        """Unflushed tail text."""
        return self._pending

    @property
    def next_index(self) -> int:
        """Index the next emitted phrase will carry."""
        return self._next_index

    def feed(self, text: str) -> list[Phrase]:
        """Append `text` and return every phrase that is now complete."""
        self._pending += text
        phrases: list[Phrase] = []

        while True:
            decision = evaluate_chunk(buffer=self._pending, policy=self._policy)
            if not decision.send:
                break

            assert decision.remainder is not None
            self._pending = decision.remainder.lstrip()

            phrase = self._make_phrase(decision.send_text or "")
            if phrase is not None:
                phrases.append(phrase)

        if not self._pending.strip():
            self._pending = ""

        return phrases

    def flush(self) -> Phrase | None:
        """Emit whatever remains and reset."""
        tail, self._pending = self._pending, ""
        return self._make_phrase(tail)

    def _make_phrase(self, raw: str) -> Phrase | None:
        text = raw.strip()
        # Punctuation-only fragments ("...") carry nothing to speak
        if not text or not any(ch.isalnum() for ch in text):
            return None

        phrase = Phrase(index=self._next_index, text=text)
        self._next_index += 1
        return phrase


# =============================================================================
# Rules
# =============================================================================

def _sentence_cut(text: str, policy: BoundaryPolicy) -> int | None:
    for match in _SENTENCE_END.finditer(text):
        if _ends_with_abbreviation(text, match.start()):
            continue
        if match.end() == len(text) and _may_continue(text, match.start()):
            # "3." or "e." at the end of the buffer; the next token decides
            return None
        return match.end()
    return None


def _strong_punct_cut(text: str, policy: BoundaryPolicy) -> int | None:
    for match in _STRONG_PUNCT.finditer(text):
        if match.end() >= policy.strong_punct_min_cut:
            return match.end()
    return None


def _word_cut(text: str, policy: BoundaryPolicy) -> int | None:
    if len(text) < policy.min_chars:
        return None

    pos = _last_whitespace(text, limit=policy.max_chars)
    if pos is None or pos < policy.word_boundary_min_pos:
        return None
    return pos + 1


def _comma_cut(text: str, policy: BoundaryPolicy) -> int | None:
    if len(text) < policy.comma_min_len:
        return None

    pos = text.rfind(",", 0, policy.max_chars)
    if pos == -1 or pos + 1 < policy.comma_min_cut:
        return None
    return pos + 1


def _forced_cut(text: str, policy: BoundaryPolicy) -> tuple[int, bool] | None:
    """Returns (cut, forced_mid_word) once the hard cap is reached."""
    if len(text) < policy.max_chars:
        return None

    if len(text) <= policy.overflow_len:
        pos = _last_whitespace(text, limit=policy.max_chars)
        if pos is not None and pos >= policy.min_chars:
            return pos + 1, False

    return policy.max_chars, True


_CASCADE = (
    (BoundaryRule.SENTENCE, _sentence_cut),
    (BoundaryRule.STRONG_PUNCT, _strong_punct_cut),
    (BoundaryRule.WORD, _word_cut),
    (BoundaryRule.COMMA, _comma_cut),
)


# =============================================================================
# Helpers
# =============================================================================

def _cut(
    text: str,
    cut: int,
    rule: BoundaryRule,
    *,
    forced_mid_word: bool = False,
) -> ChunkDecision:
    return ChunkDecision(
        send=True,
        send_text=text[:cut].strip(),
        remainder=text[cut:],
        rule=rule,
        forced_mid_word=forced_mid_word,
    )


def _last_whitespace(text: str, *, limit: int) -> int | None:
    """Index of the last whitespace char at a position < limit."""
    for i in range(min(len(text), limit) - 1, -1, -1):
        if _WHITESPACE.match(text[i]):
            return i
    return None


def _ends_with_abbreviation(text: str, punct_start: int) -> bool:
    """True if the token ending at text[punct_start] is a known abbreviation."""
    token_start = punct_start
    while token_start > 0 and not text[token_start - 1].isspace():
        token_start -= 1
    return text[token_start:punct_start + 1] in _NON_TERMINAL


def _may_continue(text: str, punct_start: int) -> bool:
    """
    True if a terminal-looking dot at the end of `text` can still turn out
    to be part of a word: a decimal point, or a partial abbreviation.
    """
    if text[punct_start] != ".":
        return False
    if punct_start > 0 and text[punct_start - 1].isdigit():
        return True

    token_start = punct_start
    while token_start > 0 and not text[token_start - 1].isspace():
        token_start -= 1
    token = text[token_start:]
    return any(a != token and a.startswith(token) for a in _NON_TERMINAL)
