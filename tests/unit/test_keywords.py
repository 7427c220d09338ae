"""Unit tests for keyword extraction and the lexical gate."""

from __future__ import annotations

import pytest

from src.services.retrieval.keywords import (
    extract_keywords,
    gate_terms,
    lexical_match_ratio,
    passes_lexical_gate,
    significant_keywords,
    term_matches,
)


class TestExtractKeywords:
    def test_words_and_bigrams(self) -> None:
        assert extract_keywords("Lahore weather, today!") == {
            "lahore",
            "weather",
            "today",
            "lahore weather",
            "weather today",
        }

    def test_short_words_are_dropped_before_pairing(self) -> None:
        keywords = extract_keywords("rain in Oslo")

        assert keywords == {"rain", "oslo", "rain oslo"}

    def test_punctuation_splits_words(self) -> None:
        assert {"state", "art"} <= extract_keywords("state-of-the-art")

    def test_empty_text(self) -> None:
        assert extract_keywords("  ?! ") == set()


class TestSignificantKeywords:
    def test_stop_words_removed(self) -> None:
        assert significant_keywords({"what", "weather", "the", "the weather"}) == ["the weather", "weather"]


class TestGateTerms:
    def test_possessive_and_plural_stripping(self) -> None:
        assert gate_terms("What's the weather in Paris?") == ["weather", "pari"]

    def test_possessive_entity(self) -> None:
        assert gate_terms("Lahore's best restaurants") == ["lahore", "best", "restaurant"]

    def test_duplicates_are_collapsed(self) -> None:
        assert gate_terms("budget Budget budgets") == ["budget"]

    def test_only_stop_words(self) -> None:
        assert gate_terms("what is this about") == []


class TestTermMatching:
    def test_literal_substring(self) -> None:
        assert term_matches("restaurant", "the restaurants downtown")

    def test_root_match_for_long_terms(self) -> None:
        assert term_matches("connection", "we were connecting late")

    def test_short_term_needs_literal_match(self) -> None:
        assert not term_matches("cat", "a dog barked")

    def test_no_terms_is_full_match(self) -> None:
        assert lexical_match_ratio([], "anything") == 1.0

    def test_partial_ratio(self) -> None:
        assert lexical_match_ratio(["weather", "pari"], "Lahore weather today") == pytest.approx(0.5)

    def test_gate_rejects_wrong_entity(self) -> None:
        terms = gate_terms("What's the weather in Paris?")

        assert not passes_lexical_gate(terms, "Lahore weather today is hot", 0.6)
        assert passes_lexical_gate(terms, "Paris weather today is mild", 0.6)

    def test_gate_is_case_insensitive(self) -> None:
        assert passes_lexical_gate(["lahore"], "LAHORE FORECAST", 0.6)
