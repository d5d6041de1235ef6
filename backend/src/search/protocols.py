"""
Contracts for the external collaborators of the search engine.

The repository application owns documents and the interaction log; the
engine only reads through these protocols. DocumentStore in
src.storage.document_store implements both on SQLite.
"""

from enum import Enum
from typing import List, Optional, Protocol, runtime_checkable

from .expression import Expression
from .models import Document, InteractionRecord


class SortOrder(str, Enum):
    """Orderings a corpus must support."""
    RECENT = "recent"        # created_at descending
    POPULAR = "popular"      # view_count descending


@runtime_checkable
class CorpusAccess(Protocol):
    """
    Read access to the document corpus.

    Implementations:
    - DocumentStore (SQLite)
    """

    def find(
        self,
        expression: Optional[Expression],
        limit: Optional[int] = None,
        order: SortOrder = SortOrder.RECENT,
    ) -> List[Document]:
        """Return at most limit documents matching expression."""
        ...

    def get_document(self, document_id: int) -> Optional[Document]:
        """Return one document by id, or None."""
        ...

    def get_documents(self, document_ids: List[int]) -> List[Document]:
        """Return the documents that exist among document_ids."""
        ...


@runtime_checkable
class InteractionLog(Protocol):
    """Read access to per-user views and bookmarks."""

    def get_interactions(self, user_id: str, view_window: int) -> List[InteractionRecord]:
        """
        Return the user's bookmarks and at most view_window most recent views.

        Views are ordered most recent first.
        """
        ...
