"""
BM25 Inverted Index

In-memory inverted index with Okapi BM25 scoring. Documents are keyed by
a caller-supplied string (usually a path) and re-adding a key replaces
its previous postings.

Scoring:
    IDF(t)       = ln((N - n + 0.5) / (n + 0.5) + 1)
    score(t, d)  = IDF(t) * tf * (k1 + 1) / (tf + k1 * (1 - b + b * |d| / avgdl))

The "+1" IDF variant keeps every contribution non-negative, even for
terms that appear in most documents.

Ranking is by score only. The order among documents with equal scores is
not part of the contract.

Usage:
    from search.bm25 import BM25Index

    index = BM25Index()
    index.add_document("notes/a.txt", "the quick brown fox")
    index.search("fox", top_k=5)   # [("notes/a.txt", 0.28...)]
"""

import logging
import math
from collections import Counter
from typing import Dict, List, Optional, Set, Tuple

from .tokenizer import Tokenizer

logger = logging.getLogger(__name__)

# BM25 parameters
K1 = 1.5
B = 0.75


class BM25Index:
    """Inverted index with BM25 ranking."""

    def __init__(
        self,
        k1: float = K1,
        b: float = B,
        tokenizer: Optional[Tokenizer] = None
    ):
        """
        Initialize an empty index.

        Args:
            k1: Term frequency saturation
            b: Document length normalization strength (0-1)
            tokenizer: Text analyzer (default: stock Tokenizer)
        """
        self.k1 = k1
        self.b = b
        self.tokenizer = tokenizer or Tokenizer()

        # doc_id -> analyzed terms
        self.documents: Dict[str, List[str]] = {}
        # term -> doc_ids containing it
        self.term_docs: Dict[str, Set[str]] = {}
        # term -> doc_id -> raw term frequency (insertion ordered)
        self.term_freqs: Dict[str, Dict[str, int]] = {}
        self.avg_doc_len: float = 0.0

    @classmethod
    def from_config(cls, config) -> "BM25Index":
        """Create an index from a SearchConfig section."""
        tokenizer = Tokenizer(config.stopwords, config.min_token_length)
        return cls(k1=config.bm25_k1, b=config.bm25_b, tokenizer=tokenizer)

    # -------------------------------------------------------------------------
    # Indexing
    # -------------------------------------------------------------------------

    def add_document(self, doc_id: str, content: str):
        """
        Add a document, replacing any previous content stored under ``doc_id``.

        Recomputes the average document length over the whole corpus, so
        each insert costs O(number of documents).
        """
        terms = self.tokenizer.analyze(content)

        if doc_id in self.documents:
            self._remove_postings(doc_id)

        logger.debug(f"Adding document {doc_id} with {len(terms)} tokens")
        self.documents[doc_id] = terms

        for term, count in Counter(terms).items():
            self.term_docs.setdefault(term, set()).add(doc_id)
            self.term_freqs.setdefault(term, {})[doc_id] = count

        total_len = sum(len(t) for t in self.documents.values())
        self.avg_doc_len = total_len / len(self.documents)

    def _remove_postings(self, doc_id: str):
        for term in set(self.documents[doc_id]):
            docs = self.term_docs.get(term)
            if docs is not None:
                docs.discard(doc_id)
                if not docs:
                    del self.term_docs[term]
            freqs = self.term_freqs.get(term)
            if freqs is not None:
                freqs.pop(doc_id, None)
                if not freqs:
                    del self.term_freqs[term]

    def clear(self):
        """Drop all documents and postings."""
        self.documents.clear()
        self.term_docs.clear()
        self.term_freqs.clear()
        self.avg_doc_len = 0.0

    # -------------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------------

    def search(self, query: str, top_k: int) -> List[Tuple[str, float]]:
        """
        Rank documents against a query.

        Args:
            query: Free-text query, analyzed like document content
            top_k: Maximum number of results

        Returns:
            (doc_id, score) pairs sorted by score descending. Documents that
            contain none of the query terms are not returned.
        """
        terms = list(dict.fromkeys(self.tokenizer.analyze(query)))
        if not terms or top_k <= 0:
            return []

        scores: Dict[str, float] = {}

        for term in terms:
            postings = self.term_freqs.get(term)
            if not postings:
                continue

            idf = self.idf(len(postings))
            for doc_id, tf in postings.items():
                doc_len = len(self.documents[doc_id])
                scores[doc_id] = scores.get(doc_id, 0.0) + self.bm25_score(
                    tf, idf, doc_len, self.avg_doc_len
                )

        ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
        return ranked[:top_k]

    def idf(self, doc_count: int) -> float:
        """Inverse document frequency for a term found in ``doc_count`` documents."""
        n = len(self.documents)
        return math.log((n - doc_count + 0.5) / (doc_count + 0.5) + 1.0)

    def bm25_score(self, term_freq: float, idf: float, doc_len: float, avg_doc_len: float) -> float:
        """BM25 contribution of one term to one document."""
        numerator = term_freq * (self.k1 + 1.0)
        denominator = term_freq + self.k1 * (1.0 - self.b + self.b * (doc_len / avg_doc_len))
        return idf * (numerator / denominator)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def doc_count(self) -> int:
        return len(self.documents)

    def document_terms(self, doc_id: str) -> Optional[List[str]]:
        terms = self.documents.get(doc_id)
        return list(terms) if terms is not None else None

    def postings(self, term: str) -> Dict[str, int]:
        """doc_id -> term frequency for a single (already normalized) term."""
        return dict(self.term_freqs.get(term, {}))

    def __contains__(self, doc_id: str) -> bool:
        return doc_id in self.documents

    def __len__(self) -> int:
        return len(self.documents)
