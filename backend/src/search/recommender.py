"""
Behavior-based paper recommendations.

Interests are inferred from the papers a user viewed or bookmarked. Users
without history get the most viewed approved papers.
"""

from typing import List
import logging

from .expression import (
    AnyOf,
    DocumentAttribute,
    Equals,
    KeywordIn,
    NoneOf,
    OneOf,
    all_of,
)
from .models import APPROVED_STATUS, Document, InterestProfile
from .protocols import CorpusAccess, InteractionLog, SortOrder

logger = logging.getLogger('search')


class RecommendationEngine:
    """
    Recommends approved papers a user has not interacted with yet.

    Steps:
    1. Collect interacted ids (bookmarks + recent views)
    2. Cold start: most viewed approved papers
    3. Otherwise build an InterestProfile from the interacted papers and
       return unseen papers sharing a top keyword or a subject area, most
       viewed first
    """

    def __init__(
        self,
        corpus: CorpusAccess,
        interactions: InteractionLog,
        view_history_window: int = 50,
        top_keywords: int = 10
    ):
        """
        Args:
            corpus: Document corpus
            interactions: Per-user interaction log
            view_history_window: Number of most recent views considered
            top_keywords: Number of profile keywords used to seed candidates
        """
        self.corpus = corpus
        self.interactions = interactions
        self.view_history_window = view_history_window
        self.top_keywords = top_keywords

    def recommend(self, user_id: str, limit: int = 10) -> List[Document]:
        """
        Recommend papers for a user.

        Storage failures are logged and produce an empty list.

        Args:
            user_id: User identifier
            limit: Maximum papers to return

        Returns:
            List of documents, most viewed first
        """
        try:
            return self._recommend(user_id, limit)
        except Exception as e:
            logger.error(f"Recommendation lookup failed for user {user_id}: {e}", exc_info=True)
            return []

    def _recommend(self, user_id: str, limit: int) -> List[Document]:
        interacted_ids = self.interacted_ids(user_id)

        if not interacted_ids:
            logger.info(f"Cold start recommendations for user {user_id}")
            return self.corpus.find(
                Equals(DocumentAttribute.STATUS, APPROVED_STATUS),
                limit=limit,
                order=SortOrder.POPULAR
            )

        profile = self.build_profile(interacted_ids)
        if profile.is_empty():
            logger.info(f"No keywords or subject areas in history of user {user_id}")
            return []

        top_keywords = profile.top_keywords(self.top_keywords)

        logger.info(
            f"Recommendations for user {user_id}: "
            f"{len(interacted_ids)} interactions, "
            f"keywords={top_keywords}, subjects={sorted(profile.subject_areas)}"
        )

        candidates = all_of(
            Equals(DocumentAttribute.STATUS, APPROVED_STATUS),
            NoneOf(DocumentAttribute.ID, tuple(interacted_ids)),
            AnyOf((
                KeywordIn(tuple(top_keywords)),
                OneOf(DocumentAttribute.SUBJECT_AREA, tuple(sorted(profile.subject_areas))),
            )),
        )

        return self.corpus.find(candidates, limit=limit, order=SortOrder.POPULAR)

    def interacted_ids(self, user_id: str) -> List[int]:
        """Distinct document ids the user viewed or bookmarked, first seen first."""
        records = self.interactions.get_interactions(user_id, self.view_history_window)

        seen = []
        for record in records:
            if record.document_id is not None and record.document_id not in seen:
                seen.append(record.document_id)
        return seen

    def build_profile(self, interacted_ids: List[int]) -> InterestProfile:
        """Build the interest profile of the interacted documents."""
        documents = self.corpus.get_documents(interacted_ids)
        return InterestProfile.from_documents(documents)
