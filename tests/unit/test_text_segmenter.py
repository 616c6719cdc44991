# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from orchestrator.segmenter import chunk_text, split_paragraphs, split_sentences


def test_empty_input_yields_no_phrases() -> None:
    assert chunk_text("") == []
    assert chunk_text("   \n\n  ") == []


def test_paragraphs_split_on_blank_lines() -> None:
    text = "First paragraph.\n\n\nSecond paragraph.\n  \nThird."

    assert split_paragraphs(text) == ["First paragraph.", "Second paragraph.", "Third."]


def test_sentences_do_not_break_after_abbreviations() -> None:
    paragraph = "Dr. Smith met Mr. Jones at Acme Inc. on Main St. today. Bring fruit, e.g. apples, etc. Then leave!"

    assert split_sentences(paragraph) == [
        "Dr. Smith met Mr. Jones at Acme Inc. on Main St. today.",
        "Bring fruit, e.g. apples, etc. Then leave!",
    ]


def test_sentences_do_not_break_after_single_initials() -> None:
    assert split_sentences("J. R. Tolkien wrote books. They sold well?") == [
        "J. R. Tolkien wrote books.",
        "They sold well?",
    ]


def test_greedy_packing_respects_cap() -> None:
    text = "One two three. Four five six. Seven eight nine."

    phrases = chunk_text(text, max_chars=30)

    assert phrases == ["One two three. Four five six.", "Seven eight nine."]
    assert all(len(p) <= 30 for p in phrases)


def test_oversized_sentence_is_kept_whole() -> None:
    long_sentence = "word " * 20 + "end."
    text = f"Short one. {long_sentence.strip()} Tail."

    phrases = chunk_text(text, max_chars=20)

    assert phrases == ["Short one.", long_sentence.strip(), "Tail."]


def test_zero_cap_means_one_phrase_per_sentence() -> None:
    text = "Yes. B is here. C is there!\n\nD?"

    assert chunk_text(text, max_chars=0) == ["Yes.", "B is here.", "C is there!", "D?"]


def test_paragraphs_never_share_a_phrase() -> None:
    assert chunk_text("Hi.\n\nThere.", max_chars=300) == ["Hi.", "There."]


def test_phrases_reconstruct_content_modulo_whitespace() -> None:
    text = "Alpha beta.  Gamma delta!\n\nEpsilon?   Zeta eta theta. Iota."

    phrases = chunk_text(text, max_chars=25)

    assert all(phrases)
    assert " ".join(phrases).split() == text.split()


def test_negative_cap_rejected() -> None:
    with pytest.raises(ValueError):
        chunk_text("x", max_chars=-1)
