"""
Query parser for the advanced search syntax.

Supports:
- Plain terms: pain management
- Exact phrases: "palliative care"
- Field search: title:nursing, author:"Smith", year:2021, category:Published,
  keyword:diabetes, subject:Health
- Operators: AND, OR, NOT (case-insensitive)

Lenient parsing:
- Never raises on malformed input
- Unterminated quotes treat the rest of the query as literal text
- Unknown field names are ignored
- Trailing NOT is dropped
"""

import re
from typing import Any, List, Optional
import logging

from .expression import (
    Expression,
    FieldMatch,
    Negation,
    Operator,
    SearchField,
    Term,
    AllOf,
    AnyOf,
    combine,
)

logger = logging.getLogger('search')

LEGACY_MODE = "legacy"
BINARY_MODE = "binary"


class QueryParser:
    """
    Parse advanced search syntax into an expression tree.

    Two operator modes are supported:

    - legacy: a single current operator starts at AND and is updated by every
      AND/OR token; the last one seen joins the whole condition list.
      "A AND B OR C" becomes OR(A, B, C).
    - binary: left-associative binary grouping with implicit AND between
      adjacent conditions. "A AND B OR C" becomes OR(AND(A, B), C).

    Examples:
    - author:Smith AND pain
    - title:"Wound Care" NOT pediatric
    - year:2021 OR year:2022
    """

    # Longer queries are truncated rather than rejected
    MAX_QUERY_LENGTH = 1000

    # field:"quoted value", "quoted phrase" (closing quote optional) or a bare word
    TOKEN_PATTERN = re.compile(r'\w+:"[^"]*"?|"[^"]*"?|[^"\s]+')

    # Decides whether a raw query uses the advanced syntax at all. Operators
    # must be whole upper-case words: "ORTHOPEDIC care" or "ANDROID NOTES" stay
    # one plain-text phrase instead of switching to parsing on the substring.
    BOOLEAN_SYNTAX_PATTERN = re.compile(r'\b(?:AND|OR|NOT)\b|:')

    OPERATORS = {'AND': Operator.AND, 'OR': Operator.OR}

    def __init__(self, operator_mode: str = LEGACY_MODE):
        if operator_mode not in (LEGACY_MODE, BINARY_MODE):
            raise ValueError(f"Unknown operator mode: {operator_mode}")
        self.operator_mode = operator_mode

    def parse(self, query: str) -> Expression:
        """
        Parse query string into an expression.

        Args:
            query: Raw query string from user

        Returns:
            Expression tree; MatchAll when nothing usable was found
        """
        tokens = self.tokenize(query)
        if not tokens:
            return combine(Operator.AND, [])

        logger.debug(f"Parsing query tokens: {tokens}")

        if self.operator_mode == BINARY_MODE:
            expression = self._parse_binary(tokens)
        else:
            expression = self._parse_legacy(tokens)

        logger.debug(f"Parsed expression: {expression}")
        return expression

    def parse_search_query(self, query: Optional[str]) -> Optional[Expression]:
        """
        Build the query expression used by search and listing.

        Queries using operators or field qualifiers go through parse().
        Anything else is matched as one substring across all text fields.

        Returns:
            Expression, or None when the query is empty
        """
        query = self._sanitize_value(query or "")
        if not query:
            return None

        if self.has_boolean_syntax(query):
            return self.parse(query)

        return Term(query)

    def has_boolean_syntax(self, query: str) -> bool:
        """Check for upper-case AND/OR/NOT words or a field qualifier."""
        return bool(self.BOOLEAN_SYNTAX_PATTERN.search(query or ""))

    def tokenize(self, query: str) -> List[str]:
        """
        Split query into tokens, keeping quoted substrings together.

        Quotes are stripped from every token and empty tokens are dropped.
        """
        if not query or not isinstance(query, str):
            return []

        query = self._sanitize_value(query)

        tokens = []
        for match in self.TOKEN_PATTERN.finditer(query):
            token = match.group(0).replace('"', '').strip()
            if token:
                tokens.append(token)
        return tokens

    def _parse_legacy(self, tokens: List[str]) -> Expression:
        conditions = []
        current_op = Operator.AND

        for condition, operator in self._iter_conditions(tokens):
            if operator is not None:
                current_op = operator
                continue
            conditions.append(condition)

        return combine(current_op, conditions)

    def _parse_binary(self, tokens: List[str]) -> Expression:
        expression = None
        pending_op = Operator.AND

        for condition, operator in self._iter_conditions(tokens):
            if operator is not None:
                pending_op = operator
                continue

            if expression is None:
                expression = condition
            elif pending_op == Operator.OR:
                expression = AnyOf((expression, condition))
            else:
                expression = AllOf((expression, condition))
            pending_op = Operator.AND

        return expression if expression is not None else combine(Operator.AND, [])

    def _iter_conditions(self, tokens: List[str]):
        """
        Yield (condition, None) for conditions and (None, operator) for AND/OR.

        Tokens that produce nothing (unknown fields, trailing NOT) are skipped.
        """
        i = 0
        while i < len(tokens):
            token = tokens[i]
            upper = token.upper()

            if upper in self.OPERATORS:
                yield None, self.OPERATORS[upper]
                i += 1
                continue

            if upper == 'NOT':
                if i + 1 < len(tokens):
                    yield Negation(tokens[i + 1]), None
                    i += 2
                else:
                    logger.debug("Dropping trailing NOT")
                    i += 1
                continue

            condition = self._parse_token(token)
            if condition is not None:
                yield condition, None
            i += 1

    def _parse_token(self, token: str) -> Optional[Expression]:
        if ':' not in token:
            return Term(token)

        field_name, _, value = token.partition(':')
        field = SearchField.lookup(field_name)

        if field is None:
            logger.debug(f"Ignoring unknown field: {field_name}")
            return None

        value = value.strip()
        if not value:
            return None

        if field == SearchField.YEAR:
            return FieldMatch(field, self.parse_year(value))

        return FieldMatch(field, value)

    @staticmethod
    def parse_year(value: Any) -> Optional[int]:
        """Parse a year value; None (never matches) when it is not a number."""
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.debug(f"Invalid year value: {value}")
            return None

    def _sanitize_value(self, value: str) -> str:
        """
        Normalize raw user input.

        - Remove null bytes
        - Trim whitespace
        - Truncate to MAX_QUERY_LENGTH
        """
        if not value:
            return ""

        value = value.replace('\x00', '').strip()

        if len(value) > self.MAX_QUERY_LENGTH:
            logger.warning(f"Query truncated to {self.MAX_QUERY_LENGTH} characters")
            value = value[:self.MAX_QUERY_LENGTH]

        return value


def parse_query(query: str, operator_mode: str = LEGACY_MODE) -> Expression:
    """
    Convenience function to parse query.

    Args:
        query: Raw query string
        operator_mode: "legacy" or "binary"

    Returns:
        Expression tree
    """
    parser = QueryParser(operator_mode=operator_mode)
    return parser.parse(query)
