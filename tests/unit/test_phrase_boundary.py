# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from orchestrator.chunking import (
    DEFAULT_POLICY,
    BoundaryPolicy,
    BoundaryRule,
    Phrase,
    PhraseBoundaryDetector,
    evaluate_chunk,
)


def _feed_chars(text: str) -> list[Phrase]:
    detector = PhraseBoundaryDetector()
    phrases: list[Phrase] = []
    for ch in text:
        phrases.extend(detector.feed(ch))
    tail = detector.flush()
    if tail is not None:
        phrases.append(tail)
    return phrases


def _feed_once(text: str) -> list[Phrase]:
    detector = PhraseBoundaryDetector()
    phrases = detector.feed(text)
    tail = detector.flush()
    if tail is not None:
        phrases.append(tail)
    return phrases


# ---------------------------------------------------------------------
# Detector
# ---------------------------------------------------------------------

def test_two_sentences_in_one_call() -> None:
    detector = PhraseBoundaryDetector()

    phrases = detector.feed("Hello world. This is great!")

    assert phrases == [Phrase(1, "Hello world."), Phrase(2, "This is great!")]
    assert detector.flush() is None


def test_char_by_char_matches_single_call() -> None:
    text = "Hello world. This is great!"

    assert _feed_chars(text) == _feed_once(text)
    assert [p.text for p in _feed_chars(text)] == ["Hello world.", "This is great!"]


def test_run_on_sentence_cuts_at_last_word_boundary_not_cap() -> None:
    text = "a" * 40 + " " + "b" * 44
    assert len(text) == 85

    detector = PhraseBoundaryDetector()
    phrases = detector.feed(text)

    assert [p.text for p in phrases] == ["a" * 40]
    assert detector.pending == "b" * 44
    assert detector.flush() == Phrase(2, "b" * 44)


def test_run_on_sentence_char_by_char_cuts_at_same_place() -> None:
    text = "a" * 40 + " " + "b" * 44

    assert [p.text for p in _feed_chars(text)] == ["a" * 40, "b" * 44]


def test_abbreviation_does_not_end_phrase() -> None:
    detector = PhraseBoundaryDetector()

    assert detector.feed("Talk to Dr. Smith") == []
    assert detector.feed(" said hello.") == [Phrase(1, "Talk to Dr. Smith said hello.")]


def test_decimal_point_split_across_feeds() -> None:
    detector = PhraseBoundaryDetector()
    phrases: list[Phrase] = []

    for token in ["It costs 3", ".", "5 dollars."]:
        phrases.extend(detector.feed(token))

    assert [p.text for p in phrases] == ["It costs 3.5 dollars."]
    assert phrases == _feed_once("It costs 3.5 dollars.")


def test_abbreviation_char_by_char_matches_single_call() -> None:
    text = "See e.g. this."

    assert [p.text for p in _feed_chars(text)] == ["See e.g. this."]
    assert _feed_chars(text) == _feed_once(text)


def test_trailing_decimal_dot_is_flushed_at_end() -> None:
    detector = PhraseBoundaryDetector()

    assert detector.feed("Total is 3.") == []
    assert detector.flush() == Phrase(1, "Total is 3.")


def test_punctuation_only_fragments_are_dropped() -> None:
    detector = PhraseBoundaryDetector()

    assert detector.feed("... ") == []
    assert detector.feed("Hi.") == [Phrase(1, "Hi.")]


def test_pending_stays_bounded_without_any_boundary() -> None:
    detector = PhraseBoundaryDetector()
    emitted: list[Phrase] = []

    for _ in range(500):
        emitted.extend(detector.feed("x"))
        assert len(detector.pending) <= DEFAULT_POLICY.overflow_len

    assert all(len(p.text) == DEFAULT_POLICY.max_chars for p in emitted)
    assert len(emitted) == 500 // DEFAULT_POLICY.max_chars


def test_flush_drains_and_resets() -> None:
    detector = PhraseBoundaryDetector()
    assert detector.feed("  trailing  ") == []

    assert detector.flush() == Phrase(1, "trailing")
    assert detector.pending == ""
    assert detector.flush() is None


def test_indices_continue_across_feeds() -> None:
    detector = PhraseBoundaryDetector(start_index=5)

    detector.feed("One. ")
    phrases = detector.feed("Two!")

    assert phrases == [Phrase(6, "Two!")]
    assert detector.next_index == 7


# ---------------------------------------------------------------------
# Pure cascade
# ---------------------------------------------------------------------

def test_sentence_rule_cuts_after_whitespace() -> None:
    decision = evaluate_chunk(buffer="Hello world. This should stay buffered")

    assert decision.send is True
    assert decision.rule is BoundaryRule.SENTENCE
    assert decision.send_text == "Hello world."
    assert decision.remainder == "This should stay buffered"


def test_sentence_rule_works_with_short_text() -> None:
    decision = evaluate_chunk(buffer="Hi!")

    assert decision.send is True
    assert decision.send_text == "Hi!"
    assert decision.remainder == ""


@pytest.mark.parametrize("buffer", ["It costs 3.", "Take e.", "See e.g."])
def test_sentence_rule_waits_on_ambiguous_final_dot(buffer: str) -> None:
    assert evaluate_chunk(buffer=buffer).send is False


def test_sentence_rule_cuts_dot_after_digit_before_space() -> None:
    decision = evaluate_chunk(buffer="It costs 3. Next")

    assert decision.rule is BoundaryRule.SENTENCE
    assert decision.send_text == "It costs 3."


def test_strong_punct_needs_minimum_cut_position() -> None:
    assert evaluate_chunk(buffer="Hi; there").send is False

    decision = evaluate_chunk(buffer="Note this; then more")
    assert decision.rule is BoundaryRule.STRONG_PUNCT
    assert decision.send_text == "Note this;"


def test_word_rule_uses_last_space() -> None:
    decision = evaluate_chunk(buffer="The quick brown fox")

    assert decision.rule is BoundaryRule.WORD
    assert decision.send_text == "The quick brown"
    assert decision.remainder == "fox"


def test_word_rule_waits_for_minimum_length() -> None:
    assert evaluate_chunk(buffer="The quick fox").send is False


def test_comma_rule_when_no_whitespace() -> None:
    decision = evaluate_chunk(buffer="a" * 25 + "," + "b" * 10)

    assert decision.rule is BoundaryRule.COMMA
    assert decision.send_text == "a" * 25 + ","


def test_forced_cut_mid_word_when_no_break() -> None:
    decision = evaluate_chunk(buffer="x" * 85)

    assert decision.rule is BoundaryRule.FORCED
    assert decision.forced_mid_word is True
    assert decision.send_text == "x" * 80
    assert decision.remainder == "x" * 5


def test_forced_cut_ignores_boundary_below_minimum() -> None:
    decision = evaluate_chunk(buffer="ab " + "x" * 90)

    assert decision.rule is BoundaryRule.FORCED
    assert decision.forced_mid_word is True
    assert decision.send_text == "ab " + "x" * 77


def test_whitespace_buffer_never_sends() -> None:
    assert evaluate_chunk(buffer="   \n ").send is False


# ---------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------

def test_default_policy_thresholds() -> None:
    assert DEFAULT_POLICY.min_chars == 15
    assert DEFAULT_POLICY.max_chars == 80
    assert DEFAULT_POLICY.strong_punct_min_cut == pytest.approx(10.5)
    assert DEFAULT_POLICY.word_boundary_min_pos == pytest.approx(12.0)
    assert DEFAULT_POLICY.comma_min_len == pytest.approx(30.0)
    assert DEFAULT_POLICY.comma_min_cut == pytest.approx(19.5)
    assert DEFAULT_POLICY.overflow_len == pytest.approx(104.0)


def test_policy_rejects_inverted_bounds() -> None:
    with pytest.raises(ValueError):
        BoundaryPolicy(min_chars=20, max_chars=10)


def test_custom_policy_changes_cap() -> None:
    policy = BoundaryPolicy(min_chars=5, max_chars=10)

    decision = evaluate_chunk(buffer="y" * 12, policy=policy)

    assert decision.send_text == "y" * 10
