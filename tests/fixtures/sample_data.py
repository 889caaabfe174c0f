"""
Sample Data for Retrieval Tests

Small document corpus plus a deterministic fake embedding provider so
semantic search can be tested without downloading a model.
"""

from typing import Dict, List, Sequence

from search.embeddings import EmbeddingProvider

# =============================================================================
# Sample Documents
# =============================================================================

DOCUMENTS: Dict[str, str] = {
    "docs/async_http.md": (
        "Concurrent HTTP requests in Python use aiohttp with asyncio. "
        "A ClientSession manages connection pooling and gather runs "
        "coroutines concurrently."
    ),
    "docs/react_hooks.md": (
        "React hooks such as useState and useEffect manage component state. "
        "Hooks must be called in the same order on every render."
    ),
    "docs/sql_indexes.md": (
        "Database indexes speed up queries. A composite index covers several "
        "columns and the column order matters for range queries."
    ),
    "docs/python_testing.md": (
        "Pytest fixtures provide reusable setup for Python tests. Fixtures "
        "can be scoped per function, module or session."
    ),
    "docs/docker_compose.md": (
        "Docker Compose describes multi-container applications in YAML. "
        "Services, networks and volumes are declared together."
    ),
}

# Keyword -> axis of the fake embedding space
VOCABULARY: List[str] = [
    "python", "react", "database", "docker", "http", "test", "hooks", "index",
]


# =============================================================================
# Fake Provider
# =============================================================================

class KeywordEmbeddingProvider(EmbeddingProvider):
    """
    Embeds text as keyword counts over a fixed vocabulary.

    Deterministic and dependency-free; records every call for assertions.
    """

    model_name = "keyword-test-model"

    def __init__(self, vocabulary: Sequence[str] = tuple(VOCABULARY)):
        self.vocabulary = list(vocabulary)
        self.calls: List[List[str]] = []

    @property
    def dimension(self) -> int:
        return len(self.vocabulary)

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        vectors = []
        for text in texts:
            lowered = text.lower()
            vectors.append([float(lowered.count(word)) for word in self.vocabulary])
        return vectors
