"""
Hybrid Search

Combines BM25 (SearchService) and semantic search (VectorIndex over
cached embeddings). Uses Reciprocal Rank Fusion (RRF) to merge.

Features:
- Lexical-only, semantic-only, or fused ranking per query
- Configurable weighting
- Result deduplication and merging by path

Usage:
    from search.hybrid_search import create_retriever

    retriever = create_retriever(config)
    retriever.index_document("docs/hooks.md", text)
    for result in retriever.search("react hooks error", limit=10):
        print(f"{result.score:.4f} - {result.path}")
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from core.config import RetrievalConfig
from core.embedding_cache import EmbeddingCache
from core.logging_config import log_performance
from .embeddings import CachedEmbedder, EmbeddingEngine, EmbeddingProvider
from .service import SearchService
from .vector_index import VectorIndex

logger = logging.getLogger(__name__)

SEARCH_MODES = ('hybrid', 'bm25', 'semantic')


@dataclass
class HybridResult:
    """A search result with combined score."""
    path: str
    score: float
    bm25_score: float
    semantic_score: float
    snippet: str

    def to_dict(self) -> dict:
        return {
            'path': self.path,
            'score': self.score,
            'bm25_score': self.bm25_score,
            'semantic_score': self.semantic_score,
            'snippet': self.snippet,
        }


class HybridSearcher:
    """
    Hybrid search combining BM25 and semantic search.

    RRF formula: score = sum(weight / (k + rank)) for each method
    where k is a constant (default 60) to prevent over-emphasis on top results.

    Semantic search is enabled only when both a vector index and an
    embedder are supplied; otherwise every mode degrades to BM25.
    """

    def __init__(
        self,
        service: Optional[SearchService] = None,
        vector_index: Optional[VectorIndex] = None,
        embedder: Optional[CachedEmbedder] = None,
        bm25_weight: float = 0.5,
        semantic_weight: float = 0.5,
        rrf_k: int = 60
    ):
        """
        Initialize hybrid searcher.

        Args:
            service: Lexical search service
            vector_index: Optional vector index for semantic search
            embedder: Optional embedder for documents and queries
            bm25_weight: Weight for BM25 results (0-1)
            semantic_weight: Weight for semantic results (0-1)
            rrf_k: RRF constant (higher = more even distribution)
        """
        self.service = service or SearchService()
        self.vector_index = vector_index
        self.embedder = embedder
        self.bm25_weight = bm25_weight
        self.semantic_weight = semantic_weight
        self.rrf_k = rrf_k
        # Current vector id per path; older versions are removed on re-index
        self._vector_ids: Dict[str, int] = {}

    @property
    def semantic_enabled(self) -> bool:
        return self.vector_index is not None and self.embedder is not None

    def index_document(self, path: str, content: str):
        """Index a document lexically and, when enabled, semantically."""
        self.service.index_document(path, content)

        if self.semantic_enabled:
            embedding = self.embedder.embed_one(content)
            doc_id = self.vector_index.add_document(path, embedding, self.service.snippet(path))
            stale_id = self._vector_ids.get(path)
            self._vector_ids[path] = doc_id
            if stale_id is not None:
                self.vector_index.remove(stale_id)

    @log_performance()
    def search(self, query: str, limit: int = 10, mode: str = 'hybrid') -> List[HybridResult]:
        """
        Search using hybrid BM25 + semantic approach.

        Args:
            query: Search query
            limit: Maximum results to return
            mode: 'hybrid', 'bm25' or 'semantic'

        Returns:
            List of HybridResult objects sorted by score
        """
        if mode not in SEARCH_MODES:
            raise ValueError(f"Unknown search mode '{mode}', expected one of {SEARCH_MODES}")

        if mode != 'bm25' and not self.semantic_enabled:
            logger.debug(f"Semantic search unavailable, falling back to BM25 for mode={mode}")
            mode = 'bm25'

        if mode == 'bm25':
            return self._bm25_search(query, limit)

        if mode == 'semantic':
            return self._semantic_search(query, limit)

        bm25_results = self._bm25_search(query, limit * 3)
        semantic_results = self._semantic_search(query, limit * 3)

        return self._merge_rrf(bm25_results, semantic_results)[:limit]

    def _bm25_search(self, query: str, limit: int) -> List[HybridResult]:
        return [
            HybridResult(
                path=r.path,
                score=r.score,
                bm25_score=r.score,
                semantic_score=0.0,
                snippet=r.snippet,
            )
            for r in self.service.search(query, limit)
        ]

    def _semantic_search(self, query: str, limit: int) -> List[HybridResult]:
        if self.vector_index.is_empty():
            return []

        query_vec = self.embedder.embed_one(query)

        # Vectors added to the index directly may repeat a path; keep the best hit
        results = []
        seen = set()
        for r in self.vector_index.search(query_vec, len(self.vector_index)):
            if r.path in seen:
                continue
            seen.add(r.path)
            results.append(HybridResult(
                path=r.path,
                score=r.score,
                bm25_score=0.0,
                semantic_score=r.score,
                snippet=r.snippet,
            ))
            if len(results) >= limit:
                break
        return results

    def _merge_rrf(
        self,
        bm25_results: List[HybridResult],
        semantic_results: List[HybridResult]
    ) -> List[HybridResult]:
        """
        Merge results using Reciprocal Rank Fusion.

        RRF score = sum(weight / (k + rank)) for each ranking method
        """
        results_map: Dict[str, HybridResult] = {}
        rrf_scores: Dict[str, float] = {}

        for rank, result in enumerate(bm25_results, 1):
            results_map[result.path] = result
            rrf_scores[result.path] = self.bm25_weight / (self.rrf_k + rank)

        for rank, result in enumerate(semantic_results, 1):
            rrf_score = self.semantic_weight / (self.rrf_k + rank)

            if result.path in results_map:
                rrf_scores[result.path] += rrf_score
                results_map[result.path].semantic_score = result.semantic_score
            else:
                results_map[result.path] = result
                rrf_scores[result.path] = rrf_score

        for path, result in results_map.items():
            result.score = rrf_scores[path]

        return sorted(results_map.values(), key=lambda r: r.score, reverse=True)

    def doc_count(self) -> int:
        return self.service.doc_count()

    def clear(self):
        self.service.clear()
        self._vector_ids.clear()
        if self.vector_index is not None:
            self.vector_index.clear()


# =============================================================================
# Factory
# =============================================================================

def create_retriever(
    config: Optional[RetrievalConfig] = None,
    provider: Optional[EmbeddingProvider] = None
) -> HybridSearcher:
    """
    Create a fully configured hybrid searcher.

    Args:
        config: Retrieval configuration (defaults if None)
        provider: Embedding provider for semantic search (default: local
                  sentence-transformers engine for the configured model)

    Returns:
        Configured HybridSearcher; semantic search is wired up only when
        ``config.search.use_vector_search`` is set
    """
    config = config or RetrievalConfig()
    search_config = config.search

    service = SearchService.from_config(search_config)

    vector_index = None
    embedder = None
    if search_config.use_vector_search:
        provider = provider or EmbeddingEngine(search_config.embedding_model)
        cache = EmbeddingCache.from_config(config.cache)
        embedder = CachedEmbedder(provider, cache, model_name=search_config.embedding_model)
        vector_index = VectorIndex()
        logger.info(f"Semantic search enabled with model {search_config.embedding_model}")

    return HybridSearcher(
        service,
        vector_index=vector_index,
        embedder=embedder,
        bm25_weight=search_config.bm25_weight,
        semantic_weight=search_config.semantic_weight,
        rrf_k=search_config.rrf_k,
    )
