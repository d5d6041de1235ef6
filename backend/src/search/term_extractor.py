"""
Key term extraction for "find similar" and relevance scoring.

Tokenization and stop-word removal live here so the TF-IDF scorer and the
key-term extractor see the same terms.
"""

import re
from collections import Counter
from typing import List
import logging

from sklearn.feature_extraction.text import ENGLISH_STOP_WORDS

logger = logging.getLogger('search')

WORD_PATTERN = re.compile(r'\b\w+\b')


def tokenize(text: str) -> List[str]:
    """Lower-case word tokens with English stop words removed."""
    if not text:
        return []
    return [
        token for token in WORD_PATTERN.findall(text.lower())
        if token not in ENGLISH_STOP_WORDS
    ]


class KeyTermExtractor:
    """
    Extracts the most frequent significant terms of a text.

    Terms are ranked by descending frequency; equal counts keep the order in
    which the terms first appear.
    """

    def __init__(self, default_limit: int = 10):
        self.default_limit = default_limit

    def extract_key_terms(self, text: str, limit: int = None) -> List[str]:
        """
        Extract top terms from text.

        Args:
            text: Source text
            limit: Maximum number of terms (defaults to default_limit)

        Returns:
            List of terms, most frequent first
        """
        limit = self.default_limit if limit is None else limit
        if limit <= 0:
            return []

        counts = Counter(tokenize(text))
        terms = [term for term, _ in counts.most_common(limit)]

        logger.debug(f"Extracted key terms: {terms}")
        return terms


def extract_key_terms(text: str, limit: int = 10) -> List[str]:
    """
    Convenience function to extract key terms.

    Args:
        text: Source text
        limit: Maximum number of terms

    Returns:
        List of terms, most frequent first
    """
    return KeyTermExtractor().extract_key_terms(text, limit)
