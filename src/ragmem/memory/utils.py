"""Utility functions for lexical ranking and title derivation."""

import re

# English stop words dropped from search queries before matching
STOP_WORDS = frozenset(
    """
    a about above after again against all am an and any are as at be because been
    before being below between both but by can could did do does doing down during
    each few for from further had has have having he her here hers herself him
    himself his how i if in into is it its itself just me more most my myself no
    nor not now of off on once only or other our ours ourselves out over own same
    she should so some such than that the their theirs them themselves then there
    these they this those through to too under until up very was we were what when
    where which while who whom why will with would you your yours yourself
    yourselves
    """.split()
)

TITLE_MAX_LENGTH = 47
TITLE_ELLIPSIS = "..."

_TERM_PATTERN = re.compile(r"\w+", re.UNICODE)


def query_terms(text: str) -> list[str]:
    """Split free text into lowercase search terms.

    Stop words are removed and duplicates collapsed, preserving first-seen order.

    Args:
        text: Free-text query

    Returns:
        List of distinct terms
    """
    terms: list[str] = []
    for token in _TERM_PATTERN.findall(text.lower()):
        token = token.strip("_")
        if not token or token in STOP_WORDS or token in terms:
            continue
        terms.append(token)
    return terms


def match_expression(terms: list[str]) -> str:
    """Build an FTS5 MATCH expression that matches any of the terms.

    Terms are quoted so FTS5 operators in user input are matched literally.

    Args:
        terms: Search terms, as returned by :func:`query_terms`

    Returns:
        MATCH expression
    """
    return " OR ".join('"{}"'.format(term.replace('"', '""')) for term in terms)


def normalize_rank(bm25_score: float) -> float:
    """Map an FTS5 bm25() value into the interval [0, 1).

    FTS5 reports better matches as more negative numbers. The magnitude is
    mapped through ``s / (1 + s)``, which preserves ordering.

    Args:
        bm25_score: Raw value returned by ``bm25()``

    Returns:
        Normalized score, higher is more relevant
    """
    magnitude = max(-bm25_score, 0.0)
    return magnitude / (1.0 + magnitude)


def lexical_rank(matched_terms: int, total_terms: int, bm25_score: float) -> float:
    """Combine query-term coverage with BM25 into a rank in (0, 1).

    The number of distinct query terms a document matches dominates. The
    normalized BM25 score only orders documents with the same coverage, so a
    document matching more terms always ranks higher regardless of length or
    term rarity.

    Args:
        matched_terms: Distinct query terms found in the document
        total_terms: Distinct terms in the query
        bm25_score: Raw value returned by ``bm25()``

    Returns:
        Rank, higher is more relevant
    """
    return (matched_terms + normalize_rank(bm25_score)) / (total_terms + 1)


def derive_title(first_message: str) -> str:
    """Derive a conversation title from the first user message.

    Messages longer than 47 characters are cut to 47 characters and given an
    ellipsis. Newlines become spaces and surrounding whitespace is trimmed.

    Args:
        first_message: The first user message of the conversation

    Returns:
        Conversation title
    """
    if len(first_message) > TITLE_MAX_LENGTH:
        title = first_message[:TITLE_MAX_LENGTH] + TITLE_ELLIPSIS
    else:
        title = first_message
    return title.replace("\r\n", " ").replace("\n", " ").strip()


def preview(text: str, length: int = 100) -> str:
    """First ``length`` characters of text followed by an ellipsis."""
    return f"{text[:length]}..."
