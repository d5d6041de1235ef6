"""
Unit tests for the advanced query parser.

Pure parsing: no database involved.
"""

import pytest

from src.search.expression import (
    MATCH_ALL,
    AllOf,
    AnyOf,
    FieldMatch,
    Negation,
    SearchField,
    Term,
    combine,
    all_of,
    Operator,
)
from src.search.query_parser import QueryParser, parse_query


@pytest.fixture
def parser():
    return QueryParser()


@pytest.fixture
def binary_parser():
    return QueryParser(operator_mode="binary")


# ---------------------------------------------------------------------------
# TOKENIZER
# ---------------------------------------------------------------------------


class TestTokenize:
    """Quoted substrings stay together, quotes are stripped."""

    def test_splits_on_whitespace(self, parser):
        assert parser.tokenize("pain  management\tcare") == ["pain", "management", "care"]

    def test_keeps_quoted_phrase(self, parser):
        assert parser.tokenize('"palliative care" nursing') == ["palliative care", "nursing"]

    def test_keeps_quoted_field_value(self, parser):
        assert parser.tokenize('title:"wound care" AND x') == ["title:wound care", "AND", "x"]

    def test_unterminated_quote_takes_rest_of_query(self, parser):
        assert parser.tokenize('pain "chronic relief') == ["pain", "chronic relief"]

    def test_empty_quotes_dropped(self, parser):
        assert parser.tokenize('"" pain') == ["pain"]

    def test_empty_and_non_string(self, parser):
        assert parser.tokenize("") == []
        assert parser.tokenize(None) == []
        assert parser.tokenize("   ") == []


# ---------------------------------------------------------------------------
# LEGACY OPERATOR MODE
# ---------------------------------------------------------------------------


class TestParseLegacy:
    """Last AND/OR seen joins every condition."""

    def test_single_term(self, parser):
        assert parser.parse("pain") == Term("pain")

    def test_implicit_and(self, parser):
        assert parser.parse("pain nursing") == AllOf((Term("pain"), Term("nursing")))

    def test_field_and_term(self, parser):
        expression = parser.parse("author:Smith AND pain")
        assert expression == AllOf((FieldMatch(SearchField.AUTHOR, "Smith"), Term("pain")))

    def test_last_operator_wins(self, parser):
        expression = parser.parse("a AND b OR c")
        assert expression == AnyOf((Term("a"), Term("b"), Term("c")))

        expression = parser.parse("a OR b AND c")
        assert expression == AllOf((Term("a"), Term("b"), Term("c")))

    def test_operators_case_insensitive(self, parser):
        assert parser.parse("a or b") == AnyOf((Term("a"), Term("b")))

    def test_not_consumes_next_token(self, parser):
        expression = parser.parse("diabetes NOT insulin")
        assert expression == AllOf((Term("diabetes"), Negation("insulin")))

    def test_not_with_quoted_phrase(self, parser):
        assert parser.parse('NOT "heart failure"') == Negation("heart failure")

    def test_trailing_not_dropped(self, parser):
        assert parser.parse("pain NOT") == Term("pain")

    def test_only_operators_match_everything(self, parser):
        assert parser.parse("AND OR") == MATCH_ALL
        assert parser.parse("") == MATCH_ALL


# ---------------------------------------------------------------------------
# BINARY OPERATOR MODE
# ---------------------------------------------------------------------------


class TestParseBinary:
    """Left-associative grouping with implicit AND."""

    def test_and_then_or(self, binary_parser):
        expression = binary_parser.parse("a AND b OR c")
        assert expression == AnyOf((AllOf((Term("a"), Term("b"))), Term("c")))

    def test_or_then_implicit_and(self, binary_parser):
        expression = binary_parser.parse("a OR b c")
        assert expression == AllOf((AnyOf((Term("a"), Term("b"))), Term("c")))

    def test_single_condition(self, binary_parser):
        assert binary_parser.parse("title:nursing") == FieldMatch(SearchField.TITLE, "nursing")

    def test_nothing_usable(self, binary_parser):
        assert binary_parser.parse("OR foo:bar") == MATCH_ALL

    def test_module_function(self):
        assert parse_query("a OR b", operator_mode="binary") == AnyOf((Term("a"), Term("b")))

    def test_unknown_mode_rejected(self):
        with pytest.raises(ValueError):
            QueryParser(operator_mode="precedence")


# ---------------------------------------------------------------------------
# FIELD QUALIFIERS
# ---------------------------------------------------------------------------


class TestFieldQualifiers:
    """field:value tokens."""

    @pytest.mark.parametrize("name,field", [
        ("title", SearchField.TITLE),
        ("author", SearchField.AUTHOR),
        ("keyword", SearchField.KEYWORD),
        ("category", SearchField.CATEGORY),
        ("subject", SearchField.SUBJECT),
        ("TITLE", SearchField.TITLE),
    ])
    def test_recognized_fields(self, parser, name, field):
        assert parser.parse(f"{name}:value") == FieldMatch(field, "value")

    def test_unknown_field_ignored(self, parser):
        assert parser.parse("journal:Lancet pain") == Term("pain")

    def test_empty_value_ignored(self, parser):
        assert parser.parse("title: pain") == Term("pain")

    def test_year_parsed_as_int(self, parser):
        assert parser.parse("year:2021") == FieldMatch(SearchField.YEAR, 2021)

    def test_invalid_year_matches_nothing(self, parser):
        assert parser.parse("year:twenty") == FieldMatch(SearchField.YEAR, None)

    def test_extra_colons_stay_in_value(self, parser):
        assert parser.parse("title:a:b") == FieldMatch(SearchField.TITLE, "a:b")


# ---------------------------------------------------------------------------
# SEARCH QUERY ENTRY POINT
# ---------------------------------------------------------------------------


class TestParseSearchQuery:
    """Plain text versus advanced syntax detection."""

    def test_empty_query_is_none(self, parser):
        assert parser.parse_search_query(None) is None
        assert parser.parse_search_query("   ") is None

    def test_plain_text_is_one_term(self, parser):
        assert parser.parse_search_query("chronic pain relief") == Term("chronic pain relief")

    def test_lowercase_operators_are_plain_text(self, parser):
        assert parser.parse_search_query("pain and care") == Term("pain and care")

    def test_uppercase_operator_triggers_parse(self, parser):
        assert parser.parse_search_query("pain OR care") == AnyOf((Term("pain"), Term("care")))

    def test_operator_inside_word_is_plain_text(self, parser):
        assert parser.parse_search_query("ANDROID NOTES") == Term("ANDROID NOTES")

    def test_operator_prefix_does_not_split_phrase(self, parser):
        # a substring check would turn this into AND(Term, Term)
        assert parser.parse_search_query("ORTHOPEDIC care") == Term("ORTHOPEDIC care")
        assert parser.parse_search_query("NOTABLE cases") == Term("NOTABLE cases")

    def test_colon_triggers_parse(self, parser):
        assert parser.parse_search_query("title:pain") == FieldMatch(SearchField.TITLE, "pain")

    def test_long_query_truncated(self, parser):
        query = "a" * (QueryParser.MAX_QUERY_LENGTH + 50)
        assert parser.parse_search_query(query) == Term("a" * QueryParser.MAX_QUERY_LENGTH)

    def test_null_bytes_removed(self, parser):
        assert parser.parse_search_query("pa\x00in") == Term("pain")


class TestCombine:
    """Expression combinators."""

    def test_or_with_match_all_matches_everything(self):
        assert combine(Operator.OR, [Term("a"), MATCH_ALL]) == MATCH_ALL

    def test_and_drops_match_all(self):
        assert combine(Operator.AND, [Term("a"), MATCH_ALL]) == Term("a")

    def test_all_of_skips_none(self):
        assert all_of(None, Term("a"), None, Term("b")) == AllOf((Term("a"), Term("b")))
