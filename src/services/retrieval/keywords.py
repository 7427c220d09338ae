"""Keyword extraction and the lexical gate used by hybrid search.

Two vocabularies are involved:

* **Index keywords** -- every lowercase word of at least three characters
  plus adjacent word bigrams, stored in the inverted index and also used
  for the query side of the keyword pass.
* **Gate terms** -- the query's significant words after a wider stop list
  and possessive/plural stripping.  A candidate survives the gate only
  when enough of them appear literally in its text, which rejects chunks
  that are semantically close but about a different entity ("Paris
  weather" vs. a chunk about Lahore weather).
"""

from __future__ import annotations

import re

_NON_WORD = re.compile(r"[^\w\s]")
_POSSESSIVE = re.compile(r"'s$")

MIN_WORD_LENGTH = 3
MIN_BIGRAM_LENGTH = 6
MIN_ROOT_TERM_LENGTH = 5
MIN_ROOT_LENGTH = 4

INDEX_STOP_WORDS = frozenset(
    {
        "the", "what", "how", "where", "when", "why", "who", "which", "can",
        "you", "tell", "about", "please", "help", "find", "show", "get", "give",
        "know", "have", "has", "had", "will", "would", "could", "should", "may",
        "might", "some", "any", "all", "more", "most", "other", "such", "into",
        "from",
    }
)

GATE_STOP_WORDS = INDEX_STOP_WORDS | frozenset(
    {
        "is", "are", "was", "were", "and", "or", "but", "for", "with", "this",
        "that", "these", "those", "your", "my", "our", "their", "its", "his",
        "her", "me", "him", "them", "us", "be", "been", "context",
    }
)


def _words(text: str) -> list[str]:
    return [w for w in _NON_WORD.sub(" ", text.lower()).split() if len(w) >= MIN_WORD_LENGTH]


def extract_keywords(text: str) -> set[str]:
    """Return the index keywords for *text*: words and adjacent-word bigrams.

    >>> sorted(extract_keywords("Lahore weather, today!"))
    ['lahore', 'lahore weather', 'today', 'weather', 'weather today']
    """
    words = _words(text)
    keywords = set(words)
    for first, second in zip(words, words[1:]):
        phrase = f"{first} {second}"
        if len(phrase) >= MIN_BIGRAM_LENGTH:
            keywords.add(phrase)
    return keywords


def significant_keywords(keywords: set[str]) -> list[str]:
    """Drop index stop words from a query's keyword set."""
    return sorted(k for k in keywords if k not in INDEX_STOP_WORDS)


def gate_terms(query: str) -> list[str]:
    """Return the query terms the lexical gate requires a chunk to contain.

    >>> gate_terms("What's the weather in Paris?")
    ['weather', 'pari']
    """
    terms: list[str] = []
    for raw in query.lower().split():
        term = _NON_WORD.sub("", _POSSESSIVE.sub("", raw))
        if len(term) < MIN_WORD_LENGTH or term in GATE_STOP_WORDS:
            continue
        if term.endswith("s") and len(term) > MIN_WORD_LENGTH:
            term = term[:-1]
        if term not in terms:
            terms.append(term)
    return terms


def term_matches(term: str, text_lower: str) -> bool:
    """Literal match tolerant of plurals and short suffixes."""
    if term in text_lower:
        return True
    if len(term) >= MIN_ROOT_TERM_LENGTH:
        root = term[: max(MIN_ROOT_LENGTH, len(term) - 2)]
        return root in text_lower
    return False


def lexical_match_ratio(terms: list[str], text: str) -> float:
    """Fraction of *terms* found in *text* (1.0 when there are no terms)."""
    if not terms:
        return 1.0
    text_lower = text.lower()
    matched = sum(1 for term in terms if term_matches(term, text_lower))
    return matched / len(terms)


def passes_lexical_gate(terms: list[str], text: str, min_ratio: float) -> bool:
    return lexical_match_ratio(terms, text) >= min_ratio
