"""
Search System

Provides:
- BM25 inverted index with snippet-bearing lexical search
- Flat cosine-similarity vector index
- Cache-through embeddings for semantic search
- Hybrid search combining both with reciprocal rank fusion

Usage:
    from search import SearchService, VectorIndex

    service = SearchService()
    service.index_document("notes/fox.txt", "the quick brown fox")
    results = service.search("fox", top_k=5)

    index = VectorIndex()
    index.add_document("notes/fox.txt", [0.1, 0.2, 0.3], "the quick brown fox")
    hits = index.search([0.1, 0.2, 0.3], k=1)
"""

from .tokenizer import Tokenizer
from .bm25 import BM25Index
from .vector_index import VectorIndex, VectorDocument, VectorSearchResult, cosine_similarity
from .service import SearchService, SearchResult, format_results
from .embeddings import EmbeddingProvider, EmbeddingEngine, CachedEmbedder
from .hybrid_search import HybridSearcher, HybridResult, create_retriever

__all__ = [
    'Tokenizer',
    'BM25Index',
    'VectorIndex',
    'VectorDocument',
    'VectorSearchResult',
    'cosine_similarity',
    'SearchService',
    'SearchResult',
    'format_results',
    'EmbeddingProvider',
    'EmbeddingEngine',
    'CachedEmbedder',
    'HybridSearcher',
    'HybridResult',
    'create_retriever',
]
