"""
TF-IDF scorer for ranking a filtered candidate set against a query.

The model is rebuilt on every call. Its corpus is the candidate set plus
the query itself, so scores are only comparable within one call.
"""

import math
from typing import Dict, List
from collections import Counter
import logging

from .models import Document, ScoredResult
from .term_extractor import tokenize

logger = logging.getLogger('search')


class TfidfScorer:
    """
    Pure Python TF-IDF ranking.

    Weights:
    tfidf(t, D) = tf(t, D) * idf(t)
    idf(t) = 1 + ln(N / (1 + n(t)))

    Where:
    - tf(t, D) = raw count of term t in D
    - N = number of documents including the query pseudo-document
    - n(t) = number of those documents containing t

    score(Q, D) = sum over terms t of Q of tfidf(t, Q) * tfidf(t, D)
    """

    def score(self, query_text: str, candidates: List[Document]) -> List[ScoredResult]:
        """
        Score candidates against query text.

        Args:
            query_text: Query or source document text
            candidates: Documents to rank

        Returns:
            ScoredResults sorted by descending score; ties keep candidate order
        """
        if not candidates:
            return []

        doc_terms = [Counter(tokenize(doc.search_text())) for doc in candidates]
        query_terms = Counter(tokenize(query_text))

        idf_scores = self._calculate_idf(doc_terms + [query_terms])

        results = []
        for document, term_freqs in zip(candidates, doc_terms):
            score = self._calculate_score(query_terms, term_freqs, idf_scores)
            results.append(ScoredResult(document=document, score=score))

        # sorted() is stable, equal scores keep candidate order
        ranked = sorted(results, key=lambda r: r.score, reverse=True)

        logger.debug(
            f"TF-IDF scored {len(ranked)} candidates over "
            f"{len(query_terms)} query terms"
        )
        return ranked

    def _calculate_idf(self, documents: List[Counter]) -> Dict[str, float]:
        """
        Calculate IDF for every term in the corpus.

        Args:
            documents: Term counts per document, query included

        Returns:
            Dict mapping term -> IDF score
        """
        n_docs = len(documents)
        doc_counts = Counter()
        for term_freqs in documents:
            doc_counts.update(term_freqs.keys())

        return {
            term: 1.0 + math.log(n_docs / (1 + count))
            for term, count in doc_counts.items()
        }

    def _calculate_score(
        self,
        query_terms: Counter,
        term_freqs: Counter,
        idf_scores: Dict[str, float]
    ) -> float:
        score = 0.0
        for term, query_tf in query_terms.items():
            doc_tf = term_freqs.get(term, 0)
            if doc_tf == 0:
                continue

            idf = idf_scores[term]
            score += (query_tf * idf) * (doc_tf * idf)

        return score


def rank_documents(query_text: str, candidates: List[Document]) -> List[Document]:
    """
    Convenience function returning candidates in relevance order.

    Args:
        query_text: Query or source document text
        candidates: Documents to rank

    Returns:
        Documents sorted by descending TF-IDF score
    """
    return [result.document for result in TfidfScorer().score(query_text, candidates)]
