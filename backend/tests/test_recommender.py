"""
Tests for behavior-based recommendations.

Approved seed documents by view count: 3 (200), 5 (150), 1 (120),
2 (80), 4 (45). Document 6 is pending with 500 views.
"""

from unittest.mock import MagicMock

import pytest

from src.search.models import Document, InteractionKind, InteractionRecord, InterestProfile
from src.search.recommender import RecommendationEngine


def ids(documents):
    return [d.id for d in documents]


@pytest.fixture
def recommender(store):
    return RecommendationEngine(store, store, view_history_window=50, top_keywords=10)


class TestColdStart:
    """Users without history get popular papers."""

    def test_most_viewed_approved(self, recommender):
        assert ids(recommender.recommend("new-user", limit=3)) == [3, 5, 1]

    def test_full_order(self, recommender):
        assert ids(recommender.recommend("new-user", limit=10)) == [3, 5, 1, 2, 4]


class TestBehaviorBased:
    """Profiles from bookmarks and views."""

    def test_bookmarked_document_excluded(self, store, recommender):
        store.add_bookmark("u1", 1)

        results = recommender.recommend("u1")

        # shares "pain"/"nursing" keywords or the Nursing subject with doc 1
        assert ids(results) == [2, 4]
        assert 1 not in ids(results)

    def test_views_feed_profile(self, store, recommender):
        store.record_view("u2", 4)

        assert ids(recommender.recommend("u2")) == [1]

    def test_no_matching_candidates(self, store, recommender):
        store.record_view("u3", 5)

        assert recommender.recommend("u3") == []

    def test_interacted_ids_distinct(self, store, recommender):
        store.add_bookmark("u4", 2)
        store.record_view("u4", 3)
        store.record_view("u4", 2)

        assert sorted(recommender.interacted_ids("u4")) == [2, 3]

    def test_view_window_bounds_history(self, store):
        store.record_view("u5", 5)
        store.record_view("u5", 4)

        recommender = RecommendationEngine(store, store, view_history_window=1)

        assert recommender.interacted_ids("u5") == [4]


class TestNonAsciiKeywords:
    """Keyword overlap is case-insensitive for accented keywords."""

    def test_keyword_match_ignores_case(self, store, recommender):
        viewed = store.save_document({
            "title": "Ética del Cuidado",
            "authors": ["Óscar Álvarez"],
            "keywords": ["Ética"],
            "subject_area": "Ética Clínica",
            "category": "Completed",
            "status": "approved",
        })
        related = store.save_document({
            "title": "Bioética y Enfermería",
            "authors": ["Inés Núñez"],
            "keywords": ["ÉTICA", "bioética"],
            "subject_area": "Filosofía",
            "category": "Published",
            "status": "approved",
        })
        store.record_view("u6", viewed)

        assert ids(recommender.recommend("u6")) == [related]


class TestFailureHandling:
    """Lookup failures degrade to an empty list."""

    def test_storage_error_returns_empty(self):
        corpus = MagicMock()
        interactions = MagicMock()
        interactions.get_interactions.side_effect = RuntimeError("database is locked")

        recommender = RecommendationEngine(corpus, interactions)

        assert recommender.recommend("u1") == []

    def test_history_without_keywords_or_subject(self):
        corpus = MagicMock()
        corpus.get_documents.return_value = [Document(id=7, title="Untitled draft", abstract="")]
        interactions = MagicMock()
        interactions.get_interactions.return_value = [
            InteractionRecord("u1", 7, InteractionKind.VIEWED)
        ]

        recommender = RecommendationEngine(corpus, interactions)

        assert recommender.recommend("u1") == []
        corpus.find.assert_not_called()

    def test_corpus_error_returns_empty(self):
        corpus = MagicMock()
        corpus.get_documents.side_effect = RuntimeError("disk I/O error")
        interactions = MagicMock()
        interactions.get_interactions.return_value = [
            InteractionRecord("u1", 7, InteractionKind.BOOKMARKED)
        ]

        recommender = RecommendationEngine(corpus, interactions)

        assert recommender.recommend("u1") == []


class TestInterestProfile:
    """Profile aggregation."""

    def test_keyword_counts_and_subjects(self):
        docs = [
            Document(id=1, title="a", abstract="", keywords=["pain", "nursing"], subject_area="Nursing"),
            Document(id=2, title="b", abstract="", keywords=["pain"], subject_area=None),
        ]

        profile = InterestProfile.from_documents(docs)

        assert profile.top_keywords(1) == ["pain"]
        assert profile.top_keywords(5) == ["pain", "nursing"]
        assert profile.subject_areas == {"Nursing"}
        assert not profile.is_empty()

    def test_empty_profile(self):
        assert InterestProfile.from_documents([]).is_empty()
