"""
Query expression tree.

User queries parse into Term, FieldMatch, Negation and the AllOf/AnyOf
combinators. The engine adds Equals, OneOf, NoneOf and KeywordIn nodes to
express scalar filters and candidate pools, so every corpus lookup goes
through one expression type.

Text matching is case-insensitive substring matching throughout.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple, Union


class SearchField(str, Enum):
    """Fields accepted in field:value query tokens."""
    TITLE = "title"
    AUTHOR = "author"
    KEYWORD = "keyword"
    YEAR = "year"
    CATEGORY = "category"
    SUBJECT = "subject"

    @classmethod
    def lookup(cls, name: str) -> Optional["SearchField"]:
        """Return the field for a name, or None when it is not recognized."""
        try:
            return cls(name.lower())
        except ValueError:
            return None


class DocumentAttribute(str, Enum):
    """Scalar document attributes usable in equality filters."""
    ID = "id"
    STATUS = "status"
    CATEGORY = "category"
    YEAR_COMPLETED = "year_completed"
    SUBJECT_AREA = "subject_area"


class Operator(str, Enum):
    AND = "AND"
    OR = "OR"


@dataclass(frozen=True)
class MatchAll:
    """Matches every document."""


@dataclass(frozen=True)
class Term:
    """Substring match across title, abstract, authors and keywords."""
    text: str


@dataclass(frozen=True)
class FieldMatch:
    """
    Match restricted to one field.

    Text fields use substring matching. For YEAR the value is an int, or
    None when the query value was not a number; None matches nothing.
    """
    field: SearchField
    value: Any


@dataclass(frozen=True)
class Negation:
    """Excludes documents whose title, abstract or keywords contain text."""
    text: str


@dataclass(frozen=True)
class Equals:
    attribute: DocumentAttribute
    value: Any


@dataclass(frozen=True)
class OneOf:
    attribute: DocumentAttribute
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class NoneOf:
    attribute: DocumentAttribute
    values: Tuple[Any, ...]


@dataclass(frozen=True)
class KeywordIn:
    """At least one keyword equals one of values (case-insensitive)."""
    values: Tuple[str, ...]


@dataclass(frozen=True)
class AllOf:
    conditions: Tuple["Expression", ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AnyOf:
    conditions: Tuple["Expression", ...] = field(default_factory=tuple)


Expression = Union[
    MatchAll, Term, FieldMatch, Negation, Equals, OneOf, NoneOf, KeywordIn, AllOf, AnyOf
]

MATCH_ALL = MatchAll()


def combine(operator: Operator, conditions: List[Expression]) -> Expression:
    """
    Join conditions under one operator.

    Zero conditions give MATCH_ALL and a single condition is returned as is.
    """
    if operator == Operator.OR and any(isinstance(c, MatchAll) for c in conditions):
        return MATCH_ALL
    conditions = [c for c in conditions if not isinstance(c, MatchAll)]
    if not conditions:
        return MATCH_ALL
    if len(conditions) == 1:
        return conditions[0]
    if operator == Operator.OR:
        return AnyOf(tuple(conditions))
    return AllOf(tuple(conditions))


def all_of(*conditions: Optional[Expression]) -> Expression:
    """AND together the non-None conditions."""
    return combine(Operator.AND, [c for c in conditions if c is not None])
