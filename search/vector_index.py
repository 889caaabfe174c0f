"""
Flat Vector Index

Exhaustive cosine-similarity search over dense embeddings. Every query is
a linear scan (O(n * d)); there is no approximate nearest-neighbor
structure.

All embeddings in a live index share one dimensionality, fixed by the
first successful insert. Inserts and queries of any other length are
rejected with DimensionMismatchError, never truncated or padded.

Usage:
    from search.vector_index import VectorIndex

    index = VectorIndex()
    index.add_document("docs/x.md", [1.0, 0.0, 0.0], "About X")
    results = index.search([0.9, 0.1, 0.0], k=1)
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import numpy as np

from core.errors import DimensionMismatchError, EmptyEmbeddingsError

logger = logging.getLogger(__name__)

Embedding = Union[Sequence[float], np.ndarray]


@dataclass
class VectorDocument:
    """A stored document with its embedding."""
    id: int
    path: str
    embedding: np.ndarray
    snippet: str


@dataclass
class VectorSearchResult:
    """A vector search hit."""
    path: str
    score: float
    snippet: str

    def to_dict(self) -> dict:
        return {
            'path': self.path,
            'score': self.score,
            'snippet': self.snippet,
        }


def cosine_similarity(vec1: Embedding, vec2: Embedding) -> float:
    """
    Compute cosine similarity between two vectors.

    Returns:
        Score in [-1, 1]; 0.0 if either vector has zero norm
    """
    a = np.asarray(vec1, dtype=np.float32)
    b = np.asarray(vec2, dtype=np.float32)
    if a.shape != b.shape:
        raise ValueError(f"Vectors must have same length: {a.shape} != {b.shape}")

    norm1 = np.linalg.norm(a)
    norm2 = np.linalg.norm(b)

    if norm1 == 0 or norm2 == 0:
        return 0.0

    return float(np.clip(np.dot(a, b) / (norm1 * norm2), -1.0, 1.0))


class VectorIndex:
    """In-memory embedding store ranked by cosine similarity."""

    def __init__(self):
        self.documents: List[VectorDocument] = []
        self._dimensions: Optional[int] = None
        self._next_id = 0
        # Stacked embeddings, rebuilt lazily after inserts
        self._matrix: Optional[np.ndarray] = None

    @property
    def dimensions(self) -> Optional[int]:
        """Embedding dimensionality, or None while the index is empty."""
        return self._dimensions

    def _validate(self, embedding: Embedding) -> np.ndarray:
        vec = np.array(embedding, dtype=np.float32)
        if vec.ndim != 1:
            raise ValueError(f"Embedding must be one-dimensional, got shape {vec.shape}")
        if vec.size == 0:
            raise EmptyEmbeddingsError()
        if self._dimensions is not None and vec.size != self._dimensions:
            raise DimensionMismatchError(expected=self._dimensions, got=int(vec.size))
        return vec

    def add_document(self, path: str, embedding: Embedding, snippet: str) -> int:
        """
        Add a document with its embedding.

        Args:
            path: Document path
            embedding: Dense vector; the first insert fixes the dimensionality
            snippet: Text shown with search results

        Returns:
            The new document id (sequential from 0 until clear())

        Raises:
            EmptyEmbeddingsError: If the embedding is empty
            DimensionMismatchError: If the length differs from the index
        """
        vec = self._validate(embedding)
        if self._dimensions is None:
            self._dimensions = int(vec.size)

        doc_id = self._next_id
        self._next_id += 1

        self.documents.append(VectorDocument(
            id=doc_id,
            path=str(path),
            embedding=vec,
            snippet=snippet,
        ))
        self._matrix = None

        logger.debug(f"Added vector document {doc_id} for {path}")
        return doc_id

    def search(self, query_embedding: Embedding, k: int) -> List[VectorSearchResult]:
        """
        Find the ``k`` documents most similar to the query.

        Raises:
            EmptyEmbeddingsError: If the query is empty
            DimensionMismatchError: If the query length differs from the index
        """
        query = self._validate(query_embedding)
        if not self.documents or k <= 0:
            return []

        if self._matrix is None:
            self._matrix = np.vstack([doc.embedding for doc in self.documents])

        corpus_norms = np.linalg.norm(self._matrix, axis=1)
        query_norm = np.linalg.norm(query)
        denominators = corpus_norms * query_norm

        dots = self._matrix @ query
        similarities = np.zeros(len(self.documents), dtype=np.float32)
        nonzero = denominators > 0
        similarities[nonzero] = dots[nonzero] / denominators[nonzero]
        similarities = np.clip(similarities, -1.0, 1.0)

        # Stable sort on negated scores keeps ties in insertion order
        top_indices = np.argsort(-similarities, kind="stable")[:k]

        return [
            VectorSearchResult(
                path=self.documents[i].path,
                score=float(similarities[i]),
                snippet=self.documents[i].snippet,
            )
            for i in top_indices
        ]

    def remove(self, doc_id: int) -> bool:
        """Drop a document by id. Returns False if no such id is stored."""
        for i, doc in enumerate(self.documents):
            if doc.id == doc_id:
                del self.documents[i]
                self._matrix = None
                return True
        return False

    def get(self, doc_id: int) -> Optional[VectorDocument]:
        for doc in self.documents:
            if doc.id == doc_id:
                return doc
        return None

    def is_empty(self) -> bool:
        return not self.documents

    def clear(self):
        """Drop all documents and reset dimensionality and id counter."""
        self.documents.clear()
        self._dimensions = None
        self._next_id = 0
        self._matrix = None

    def __len__(self) -> int:
        return len(self.documents)
