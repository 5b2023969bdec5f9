"""
Unit tests for find-in-conversation.
"""

from chatdesk.core.search import SearchIndex, TextNode, find_matches


NODES = [
    TextNode("m0.header", "You"),
    TextNode("m0.0", "alpha beta alphabet"),
    TextNode("m1.header", "Claude"),
    TextNode("m1.0", "Alpha again"),
]


class TestFindMatches:
    """Tests for the pure matching function."""

    def test_substring_matches(self):
        spans = find_matches("alpha beta alphabet", "alpha")
        assert [(s.start, s.end) for s in spans] == [(0, 5), (11, 16)]

    def test_whole_word(self):
        spans = find_matches("alpha beta alphabet", "alpha", whole_word=True)
        assert [(s.start, s.end) for s in spans] == [(0, 5)]

    def test_case_insensitive_keeps_original_text(self):
        spans = find_matches("Alpha ALPHA alpha", "aLpHa")
        assert [s.text for s in spans] == ["Alpha", "ALPHA", "alpha"]

    def test_empty_query_matches_nothing(self):
        assert find_matches("anything", "") == []

    def test_regex_metacharacters_are_literal(self):
        spans = find_matches("a.b axb (a.b)", "a.b")
        assert [s.start for s in spans] == [0, 9]
        assert find_matches("f(x) = y", "f(x)")[0].text == "f(x)"

    def test_non_overlapping(self):
        spans = find_matches("aaaa", "aa")
        assert [(s.start, s.end) for s in spans] == [(0, 2), (2, 4)]

    def test_document_order_across_nodes(self):
        spans = find_matches(NODES, "alpha")
        assert [(s.node_id, s.start) for s in spans] == [("m0.0", 0), ("m0.0", 11), ("m1.0", 0)]

    def test_spans_stay_within_one_node(self):
        nodes = [TextNode("a", "foo"), TextNode("b", "bar")]
        assert find_matches(nodes, "foobar") == []


class TestSearchIndex:
    """Tests for the cursor over the last search."""

    def test_first_match_becomes_current(self):
        index = SearchIndex()
        spans = index.search(NODES, "alpha")
        assert len(spans) == 3
        assert index.current_index == 0
        assert index.current.node_id == "m0.0"
        assert [s.current for s in index.matches] == [True, False, False]

    def test_next_cycles(self):
        index = SearchIndex()
        index.search(NODES, "alpha")
        positions = [index.next().start for _ in range(4)]
        assert positions == [11, 0, 0, 11]
        assert index.current_index == 1

    def test_previous_wraps_to_last(self):
        index = SearchIndex()
        index.search(NODES, "alpha")
        span = index.previous()
        assert span.node_id == "m1.0"
        assert index.current_index == 2

    def test_single_current(self):
        index = SearchIndex()
        index.search(NODES, "alpha")
        for _ in range(5):
            index.next()
            assert sum(1 for s in index.matches if s.current) == 1

    def test_navigation_without_matches(self):
        index = SearchIndex()
        index.search(NODES, "zeta")
        assert index.count == 0
        assert index.current is None
        assert index.next() is None
        assert index.previous() is None

    def test_invalidate_drops_spans(self):
        index = SearchIndex()
        old = index.search(NODES, "alpha")
        index.invalidate()
        assert index.count == 0
        assert index.current_index == -1
        assert index.next() is None
        assert not any(s.current for s in old)
        assert index.query == "alpha"

    def test_clear_forgets_query(self):
        index = SearchIndex()
        index.search(NODES, "alpha")
        index.clear()
        assert index.query == ""
        assert index.count == 0

    def test_new_search_replaces_previous(self):
        index = SearchIndex()
        index.search(NODES, "alpha")
        index.next()
        spans = index.search(NODES, "beta")
        assert len(spans) == 1
        assert index.current_index == 0
