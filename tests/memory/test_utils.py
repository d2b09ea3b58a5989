"""Tests for ranking and title helpers."""

from ragmem.memory.utils import (
    derive_title,
    lexical_rank,
    match_expression,
    normalize_rank,
    preview,
    query_terms,
)


def test_query_terms_drops_stop_words_and_duplicates():
    assert query_terms("Can you help me with THE technical issue, technical?") == [
        "help",
        "technical",
        "issue",
    ]


def test_query_terms_without_usable_terms():
    assert query_terms("") == []
    assert query_terms("the and of ???") == []


def test_match_expression_or_combines_quoted_terms():
    assert match_expression(["technical", "issue"]) == '"technical" OR "issue"'
    assert match_expression(['say"hi']) == '"say""hi"'


def test_normalize_rank_is_bounded_and_monotonic():
    ranks = [normalize_rank(score) for score in (-0.1, -1.0, -5.0, -50.0)]

    assert all(0 < rank < 1 for rank in ranks)
    assert ranks == sorted(ranks)
    assert normalize_rank(-1.0) == 0.5
    assert normalize_rank(0.0) == 0.0


def test_derive_title_short_message_unchanged():
    message = "Hello, can you help me plan a trip?"
    assert derive_title(message) == message


def test_derive_title_truncates_long_message():
    message = "Please summarize the quarterly report for the board meeting tomorrow"

    title = derive_title(message)

    assert title == message[:47] + "..."
    assert len(title) == 50


def test_derive_title_at_threshold_not_truncated():
    message = "x" * 47
    assert derive_title(message) == message


def test_derive_title_collapses_newlines_and_trims():
    assert derive_title("  first line\nsecond line  ") == "first line second line"
    assert derive_title("a\r\nb") == "a b"


def test_preview():
    assert preview("abcdef", 3) == "abc..."


def test_lexical_rank_prefers_term_coverage():
    """Test one more matched term outweighs any BM25 difference."""
    weak_full_match = lexical_rank(2, 2, -1e-6)
    strong_partial_match = lexical_rank(1, 2, -1000.0)

    assert weak_full_match > strong_partial_match
    assert 0 < strong_partial_match < weak_full_match < 1


def test_lexical_rank_orders_equal_coverage_by_bm25():
    assert lexical_rank(1, 2, -5.0) > lexical_rank(1, 2, -1.0)
    assert lexical_rank(1, 1, 0.0) == 0.5
