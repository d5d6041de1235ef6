"""
Search orchestrator: parsing, corpus filtering, TF-IDF re-ranking and
recommendations behind one entry point.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
import logging

from .expression import (
    AnyOf,
    DocumentAttribute,
    Equals,
    Expression,
    FieldMatch,
    KeywordIn,
    NoneOf,
    SearchField,
    all_of,
)
from .models import APPROVED_STATUS, Document
from .protocols import CorpusAccess, InteractionLog, SortOrder
from .query_parser import QueryParser
from .recommender import RecommendationEngine
from .term_extractor import KeyTermExtractor
from .tfidf_scorer import TfidfScorer
from ..storage.database import Database, init_database
from ..storage.document_store import DocumentStore
from config.search_config import (
    DATABASE_PATH,
    QUERY_CONFIG,
    RECOMMENDATION_CONFIG,
    SEARCH_CONFIG,
)

logger = logging.getLogger('search')


class DocumentNotFoundError(LookupError):
    """Raised when a document id does not resolve."""

    def __init__(self, document_id: Any):
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id


@dataclass
class SearchParams:
    """Advanced search parameters."""
    query: Optional[str] = None
    category: Optional[str] = None
    year_completed: Optional[Union[int, str]] = None
    subject_area: Optional[str] = None
    author: Optional[str] = None
    semantic: bool = False
    limit: int = 50

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v not in (None, '')}


class SearchEngine:
    """
    Stateless search and recommendation engine.

    Features:
    - Advanced query syntax with field qualifiers and AND/OR/NOT
    - Scalar filters (category, year, subject area, author)
    - Optional TF-IDF re-ranking over the filtered candidates
    - "Find similar" via key terms + TF-IDF
    - Behavior-based recommendations with popularity fallback

    Every ranking structure is built per call; nothing is cached.
    """

    def __init__(
        self,
        db_path: str = None,
        corpus: Optional[CorpusAccess] = None,
        interactions: Optional[InteractionLog] = None,
        operator_mode: Optional[str] = None
    ):
        """
        Initialize search engine.

        Args:
            db_path: Path to SQLite database (used when no corpus is given)
            corpus: Corpus implementation, defaults to a DocumentStore on db_path
            interactions: Interaction log, defaults to the corpus when it provides one
            operator_mode: Query operator mode ("legacy" or "binary")
        """
        self.db_path = db_path or DATABASE_PATH
        self.db: Optional[Database] = None
        self.corpus = corpus
        self.interactions = interactions

        self.query_parser = QueryParser(operator_mode or QUERY_CONFIG['operator_mode'])
        self.scorer = TfidfScorer()
        self.term_extractor = KeyTermExtractor(SEARCH_CONFIG['similar_key_terms'])
        self.recommender: Optional[RecommendationEngine] = None

        if self.corpus is not None:
            self._init_recommender()

    def connect_db(self):
        """Open the SQLite store when no corpus was injected."""
        if self.corpus is None:
            logger.info(f"Opening document store at {self.db_path}")
            self.db = init_database(self.db_path)
            self.corpus = DocumentStore(self.db.connect())
            self._init_recommender()

    def _init_recommender(self):
        if self.interactions is None and isinstance(self.corpus, InteractionLog):
            self.interactions = self.corpus

        if self.interactions is not None:
            self.recommender = RecommendationEngine(
                self.corpus,
                self.interactions,
                view_history_window=RECOMMENDATION_CONFIG['view_history_window'],
                top_keywords=RECOMMENDATION_CONFIG['top_keywords']
            )

    @property
    def store(self) -> Optional[DocumentStore]:
        """The SQLite store, when the corpus is one."""
        return self.corpus if isinstance(self.corpus, DocumentStore) else None

    def _require_corpus(self) -> CorpusAccess:
        if self.corpus is None:
            raise RuntimeError("Document store not connected. Call connect_db() first.")
        return self.corpus

    # ------------------------------------------------------------------
    # Advanced search
    # ------------------------------------------------------------------

    def search(self, params: SearchParams) -> List[Document]:
        """
        Execute an advanced search.

        Args:
            params: Query text, scalar filters, semantic flag and limit

        Returns:
            Approved documents, relevance ordered when semantic ranking applies,
            newest first otherwise
        """
        corpus = self._require_corpus()
        start_time = datetime.now()

        expression = self.build_search_expression(params)
        logger.info(f"Executing search: params={params.to_dict()}, expression={expression}")

        documents = corpus.find(expression, limit=params.limit, order=SortOrder.RECENT)

        query = (params.query or '').strip()
        if params.semantic and query and documents:
            scored = self.scorer.score(query, documents)
            documents = [result.document for result in scored]
            logger.debug(f"Semantic re-ranking applied to {len(documents)} results")

        query_time_ms = int((datetime.now() - start_time).total_seconds() * 1000)
        logger.info(f"Search completed: {len(documents)} results, {query_time_ms}ms")

        return documents

    def build_search_expression(self, params: SearchParams) -> Expression:
        """
        Combine status, scalar filters and the parsed query with AND.

        Category and year are equality filters; subject area and author are
        substring filters.
        """
        conditions = [Equals(DocumentAttribute.STATUS, APPROVED_STATUS)]

        if params.category:
            conditions.append(Equals(DocumentAttribute.CATEGORY, params.category))
        if params.year_completed not in (None, ''):
            # a year that is not a number matches nothing
            conditions.append(
                FieldMatch(SearchField.YEAR, self.query_parser.parse_year(params.year_completed))
            )
        if params.subject_area:
            conditions.append(FieldMatch(SearchField.SUBJECT, params.subject_area))
        if params.author:
            conditions.append(FieldMatch(SearchField.AUTHOR, params.author))

        conditions.append(self.query_parser.parse_search_query(params.query))

        return all_of(*conditions)

    # ------------------------------------------------------------------
    # Similar documents
    # ------------------------------------------------------------------

    def find_similar(self, document_id: int, limit: int = None) -> List[Document]:
        """
        Find approved documents similar to a given one.

        Key terms of the source seed the candidate pool (shared keyword, same
        subject area or same category), which is then ranked by TF-IDF.

        Args:
            document_id: Source document id
            limit: Maximum results

        Returns:
            Similar documents, most similar first

        Raises:
            DocumentNotFoundError: If the source document does not exist
        """
        corpus = self._require_corpus()
        limit = limit or SEARCH_CONFIG['similar_default_limit']

        source = corpus.get_document(document_id)
        if source is None:
            raise DocumentNotFoundError(document_id)

        source_text = source.search_text()
        key_terms = self.term_extractor.extract_key_terms(source_text)

        related = [
            KeywordIn(tuple(key_terms)),
            Equals(DocumentAttribute.CATEGORY, source.category),
        ]
        if source.subject_area:
            related.append(Equals(DocumentAttribute.SUBJECT_AREA, source.subject_area))

        candidates_expression = all_of(
            NoneOf(DocumentAttribute.ID, (source.id,)),
            Equals(DocumentAttribute.STATUS, APPROVED_STATUS),
            AnyOf(tuple(related)),
        )

        candidates = corpus.find(
            candidates_expression,
            limit=limit * SEARCH_CONFIG['similar_candidate_multiplier'],
            order=SortOrder.RECENT
        )

        scored = self.scorer.score(source_text, candidates)
        similar = [result.document for result in scored[:limit]]

        logger.info(
            f"Similar to {document_id}: key_terms={key_terms}, "
            f"{len(candidates)} candidates, {len(similar)} returned"
        )
        return similar

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def recommend(self, user_id: str, limit: int = None) -> List[Document]:
        """
        Recommend documents for a user.

        Returns an empty list when the underlying lookups fail.
        """
        self._require_corpus()
        if self.recommender is None:
            raise RuntimeError("No interaction log configured for recommendations")

        limit = limit or SEARCH_CONFIG['recommendation_default_limit']
        return self.recommender.recommend(user_id, limit)

    # ------------------------------------------------------------------
    # Research listing
    # ------------------------------------------------------------------

    def list_documents(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        status: Optional[str] = None
    ) -> List[Document]:
        """
        List documents for the repository browser, newest first.

        Only approved documents are listed unless a status is requested.
        The search text is matched across all text fields.
        """
        corpus = self._require_corpus()

        expression = all_of(
            Equals(DocumentAttribute.STATUS, status or APPROVED_STATUS),
            Equals(DocumentAttribute.CATEGORY, category) if category else None,
            self.query_parser.parse_search_query(search),
        )

        documents = corpus.find(expression, order=SortOrder.RECENT)
        logger.info(f"Listing returned {len(documents)} documents")
        return documents

    def get_document(self, document_id: int) -> Document:
        """
        Get a document by id.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        document = self._require_corpus().get_document(document_id)
        if document is None:
            raise DocumentNotFoundError(document_id)
        return document

    def get_stats(self) -> Dict[str, Any]:
        """Corpus statistics from the SQLite store."""
        if self.store is None:
            return {}
        return self.store.get_statistics()

    def close(self):
        """Close database connection."""
        if self.db is not None:
            self.db.close()
            self.db = None
            self.corpus = None
            self.recommender = None
