"""
Lexical Search Service

Pairs a BM25Index with the original document text so results can carry a
snippet. This is the entry point for keyword search.

Usage:
    from search.service import SearchService

    service = SearchService()
    service.index_document("notes/fox.txt", "the quick brown fox")
    for result in service.search("fox", top_k=5):
        print(f"{result.score:.2f} - {result.path}")
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from core.logging_config import log_performance
from .bm25 import BM25Index

logger = logging.getLogger(__name__)

SNIPPET_CHARS = 200
MISSING_SNIPPET = "..."
DEFAULT_TOP_K = 10


@dataclass
class SearchResult:
    """A ranked lexical search hit."""
    path: str
    score: float
    snippet: str

    def to_dict(self) -> dict:
        return {
            'path': self.path,
            'score': self.score,
            'snippet': self.snippet,
        }


class SearchService:
    """BM25-ranked document retrieval with snippets."""

    def __init__(
        self,
        index: Optional[BM25Index] = None,
        snippet_chars: int = SNIPPET_CHARS,
        default_top_k: int = DEFAULT_TOP_K
    ):
        self.index = index or BM25Index()
        self.snippet_chars = snippet_chars
        self.default_top_k = default_top_k
        # path -> original content
        self.documents: Dict[str, str] = {}

    @classmethod
    def from_config(cls, config) -> "SearchService":
        """Create a service from a SearchConfig section."""
        return cls(
            index=BM25Index.from_config(config),
            snippet_chars=config.snippet_chars,
            default_top_k=config.max_results,
        )

    def index_document(self, path: str, content: str):
        """Index a document by path, keeping its content for snippets."""
        logger.info(f"Indexing document: {path}")
        self.index.add_document(path, content)
        self.documents[path] = content

    @log_performance()
    def search(self, query: str, top_k: Optional[int] = None) -> List[SearchResult]:
        """
        Search indexed documents.

        Args:
            query: Free-text query
            top_k: Maximum results (default: configured max_results)

        Returns:
            SearchResult objects sorted by BM25 score descending
        """
        if top_k is None:
            top_k = self.default_top_k

        logger.info(f"Searching for: {query}")
        hits = self.index.search(query, top_k)

        return [
            SearchResult(path=path, score=score, snippet=self.snippet(path))
            for path, score in hits
        ]

    def snippet(self, path: str) -> str:
        """First ``snippet_chars`` characters of a document, or "..." if unknown."""
        content = self.documents.get(path)
        if content is None:
            return MISSING_SNIPPET
        return content[:self.snippet_chars]

    def doc_count(self) -> int:
        return len(self.documents)

    def clear(self):
        """Clear all indexed documents."""
        self.index.clear()
        self.documents.clear()


def format_results(results: List[SearchResult]) -> str:
    """Render results as plain text, one line per hit."""
    if not results:
        return "No results found."
    return "\n".join(
        f"{r.path} (score: {r.score:.2f}): {r.snippet}" for r in results
    )
