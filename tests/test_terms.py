"""Tests for query term compilation and matching."""

from ext_fts_search.terms import QueryTerm, parse_query_terms, split_search_term


class TestQueryTerm:
    """Test wildcard, prefix and whole-word matching."""

    def test_wildcard_prefix(self):
        term = QueryTerm("fo*")
        assert term.matches_word("foobar")
        assert term.matches_word("fo")
        assert not term.matches_word("xfoo")

    def test_bare_term_is_prefix(self):
        term = QueryTerm("cat")
        assert term.matches_word("category")
        assert term.matches_word("cat")
        assert not term.matches_word("scatter")
        assert not term.matches_word("ca")

    def test_interior_wildcard(self):
        term = QueryTerm("r*d")
        assert term.matches_word("red")
        assert term.matches_word("road")
        assert term.matches_word("rd")
        assert term.matches_word("rider")
        assert not term.matches_word("ruby")

    def test_multiple_wildcards_in_order(self):
        term = QueryTerm("a*b*c")
        assert term.matches_word("axxbyyc")
        assert term.matches_word("abc")
        assert not term.matches_word("acb")

    def test_case_insensitive(self):
        term = QueryTerm("Order")
        assert term.text == "order"
        assert term.matches("ORDER #123")

    def test_matches_any_word_of_value(self):
        term = QueryTerm("widget")
        assert term.matches("the  widget\tset")
        assert not term.matches("gadgets only")
        assert not term.matches("")

    def test_regex_characters_are_literal(self):
        term = QueryTerm("a.b")
        assert term.matches_word("a.bc")
        assert not term.matches_word("axb")
        assert term.regex == r"a\.b.*"

    def test_regex_pattern(self):
        assert QueryTerm("fo*").regex == "fo.*.*"
        assert QueryTerm("red").regex == "red.*"

    def test_equality_ignores_case(self):
        assert QueryTerm("Red") == QueryTerm("red")
        assert len({QueryTerm("Red"), QueryTerm("RED")}) == 1

    def test_structure(self):
        term = QueryTerm("ab*cd")
        assert term.prefix == "ab"
        assert term.segments == ("ab", "cd")


class TestParseQueryTerms:
    """Test splitting raw search strings."""

    def test_split_on_whitespace(self):
        assert split_search_term("  red\twidget \n") == ["red", "widget"]

    def test_distinct_terms_in_order(self):
        terms = parse_query_terms("red widget Red")
        assert [t.text for t in terms] == ["red", "widget"]

    def test_empty_query(self):
        assert parse_query_terms("") == []
        assert parse_query_terms("   ") == []
        assert parse_query_terms(None) == []
