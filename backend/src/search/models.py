"""
Data model shared by the search, ranking and recommendation components.

Documents are owned by the repository service; the engine only reads them.
Everything else here is derived per request and discarded afterwards.
"""

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Set


APPROVED_STATUS = "approved"


class Category(str, Enum):
    """Publication category of a research paper."""
    COMPLETED = "Completed"
    PUBLISHED = "Published"


class InteractionKind(str, Enum):
    VIEWED = "viewed"
    BOOKMARKED = "bookmarked"


@dataclass
class Document:
    """A research paper as seen by the search engine."""
    id: int
    title: str
    abstract: str
    authors: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    subject_area: Optional[str] = None
    category: str = Category.COMPLETED.value
    year_completed: Optional[int] = None
    view_count: int = 0
    status: str = "pending"
    created_at: Optional[str] = None

    def search_text(self) -> str:
        """Text used for relevance scoring and key-term extraction."""
        return f"{self.title} {self.abstract} {' '.join(self.keywords)}"


@dataclass
class InteractionRecord:
    """A single view or bookmark by a user."""
    user_id: str
    document_id: int
    kind: InteractionKind
    timestamp: Optional[str] = None


@dataclass
class InterestProfile:
    """Implicit interests inferred from a user's interactions."""
    keyword_counts: Counter = field(default_factory=Counter)
    subject_areas: Set[str] = field(default_factory=set)

    @classmethod
    def from_documents(cls, documents: List[Document]) -> "InterestProfile":
        profile = cls()
        for document in documents:
            profile.keyword_counts.update(document.keywords or [])
            if document.subject_area:
                profile.subject_areas.add(document.subject_area)
        return profile

    def top_keywords(self, limit: int) -> List[str]:
        # most_common keeps first-seen order for equal counts
        return [keyword for keyword, _ in self.keyword_counts.most_common(limit)]

    def is_empty(self) -> bool:
        return not self.keyword_counts and not self.subject_areas


@dataclass
class ScoredResult:
    """A document with its relevance score from one scoring pass."""
    document: Document
    score: float
