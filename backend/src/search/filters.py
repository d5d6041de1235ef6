"""
Filter builder that compiles query expressions into SQLite WHERE clauses.

All user values are bound as parameters; column names come from fixed maps.
Text matches compare casefold(column) against a casefolded LIKE pattern with
escaped wildcards. casefold() is the Unicode-aware SQL function registered by
Database.connect; SQLite's own LOWER() and LIKE only fold ASCII. List columns
are JSON arrays searched through json_each.
"""

from typing import Any, Dict, List, Optional, Tuple
import logging

from .expression import (
    AllOf,
    AnyOf,
    DocumentAttribute,
    Equals,
    Expression,
    FieldMatch,
    KeywordIn,
    MatchAll,
    Negation,
    NoneOf,
    OneOf,
    SearchField,
    Term,
)

logger = logging.getLogger('search')

ALWAYS_TRUE = "1 = 1"
ALWAYS_FALSE = "0 = 1"

# Scalar columns for equality filters
ATTRIBUTE_COLUMNS: Dict[DocumentAttribute, str] = {
    DocumentAttribute.ID: "d.id",
    DocumentAttribute.STATUS: "d.status",
    DocumentAttribute.CATEGORY: "d.category",
    DocumentAttribute.YEAR_COMPLETED: "d.year_completed",
    DocumentAttribute.SUBJECT_AREA: "d.subject_area",
}

# Plain text columns for field:value matches
TEXT_FIELD_COLUMNS: Dict[SearchField, str] = {
    SearchField.TITLE: "d.title",
    SearchField.CATEGORY: "d.category",
    SearchField.SUBJECT: "d.subject_area",
}

# JSON array columns for field:value matches
LIST_FIELD_COLUMNS: Dict[SearchField, str] = {
    SearchField.AUTHOR: "d.authors_json",
    SearchField.KEYWORD: "d.keywords_json",
}


class SearchFilters:
    """Builds SQL WHERE clauses for document lookups."""

    @staticmethod
    def build_where_clause(expression: Optional[Expression]) -> Tuple[str, List[Any]]:
        """
        Compile an expression into a WHERE clause.

        Args:
            expression: Expression tree, or None for no filtering

        Returns:
            Tuple of (where_clause, params)
        """
        params: List[Any] = []
        if expression is None:
            return ALWAYS_TRUE, params

        where_clause = SearchFilters._compile(expression, params)
        logger.debug(f"Built WHERE clause: {where_clause} params={params}")
        return where_clause, params

    @staticmethod
    def _compile(node: Expression, params: List[Any]) -> str:
        if isinstance(node, MatchAll):
            return ALWAYS_TRUE

        if isinstance(node, Term):
            return SearchFilters._any_text_like(
                node.text,
                params,
                text_columns=("d.title", "d.abstract"),
                list_columns=("d.authors_json", "d.keywords_json"),
            )

        if isinstance(node, Negation):
            inner = SearchFilters._any_text_like(
                node.text,
                params,
                text_columns=("d.title", "d.abstract"),
                list_columns=("d.keywords_json",),
            )
            return f"NOT {inner}"

        if isinstance(node, FieldMatch):
            return SearchFilters._compile_field_match(node, params)

        if isinstance(node, Equals):
            column = ATTRIBUTE_COLUMNS[node.attribute]
            if node.value is None:
                return f"{column} IS NULL"
            params.append(node.value)
            return f"{column} = ?"

        if isinstance(node, (OneOf, NoneOf)):
            values = list(node.values)
            if not values:
                return ALWAYS_FALSE if isinstance(node, OneOf) else ALWAYS_TRUE
            column = ATTRIBUTE_COLUMNS[node.attribute]
            placeholders = ','.join('?' * len(values))
            params.extend(values)
            operator = "IN" if isinstance(node, OneOf) else "NOT IN"
            return f"{column} {operator} ({placeholders})"

        if isinstance(node, KeywordIn):
            values = [v.casefold() for v in node.values if v]
            if not values:
                return ALWAYS_FALSE
            placeholders = ','.join('?' * len(values))
            params.extend(values)
            return (
                "EXISTS (SELECT 1 FROM json_each(d.keywords_json) "
                f"WHERE casefold(json_each.value) IN ({placeholders}))"
            )

        if isinstance(node, (AllOf, AnyOf)):
            if not node.conditions:
                return ALWAYS_TRUE if isinstance(node, AllOf) else ALWAYS_FALSE
            joiner = " AND " if isinstance(node, AllOf) else " OR "
            parts = [SearchFilters._compile(c, params) for c in node.conditions]
            return "(" + joiner.join(parts) + ")"

        raise TypeError(f"Unsupported expression node: {node!r}")

    @staticmethod
    def _compile_field_match(node: FieldMatch, params: List[Any]) -> str:
        if node.field == SearchField.YEAR:
            if node.value is None:
                return ALWAYS_FALSE
            params.append(node.value)
            return "d.year_completed = ?"

        if node.field in LIST_FIELD_COLUMNS:
            return SearchFilters._json_list_like(
                LIST_FIELD_COLUMNS[node.field], node.value, params
            )

        column = TEXT_FIELD_COLUMNS[node.field]
        params.append(SearchFilters.like_pattern(node.value))
        return f"casefold(COALESCE({column}, '')) LIKE ? ESCAPE '\\'"

    @staticmethod
    def _any_text_like(
        text: str,
        params: List[Any],
        text_columns: Tuple[str, ...],
        list_columns: Tuple[str, ...]
    ) -> str:
        conditions = []
        for column in text_columns:
            params.append(SearchFilters.like_pattern(text))
            conditions.append(f"casefold(COALESCE({column}, '')) LIKE ? ESCAPE '\\'")
        for column in list_columns:
            conditions.append(SearchFilters._json_list_like(column, text, params))
        return "(" + " OR ".join(conditions) + ")"

    @staticmethod
    def _json_list_like(column: str, text: str, params: List[Any]) -> str:
        params.append(SearchFilters.like_pattern(text))
        return (
            f"EXISTS (SELECT 1 FROM json_each({column}) "
            "WHERE casefold(json_each.value) LIKE ? ESCAPE '\\')"
        )

    @staticmethod
    def like_pattern(text: str) -> str:
        """Build a case-insensitive substring LIKE pattern with wildcards escaped."""
        escaped = str(text).casefold().replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_')
        return f"%{escaped}%"
