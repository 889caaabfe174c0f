"""
Exception hierarchy for the retrieval engine.

Vector index errors are caller mistakes (bad embeddings) and must not be
retried. Cache errors wrap the underlying filesystem or decoding failure
so callers can catch one family while keeping the original cause.
"""

from typing import Optional


class RetrievalError(Exception):
    """Base exception for all retrieval engine errors."""


# =============================================================================
# Vector Index
# =============================================================================

class VectorIndexError(RetrievalError):
    """Base exception for vector index errors."""


class EmptyEmbeddingsError(VectorIndexError):
    """A zero-length embedding was supplied."""

    def __init__(self, message: str = "empty embeddings"):
        super().__init__(message)


class DimensionMismatchError(VectorIndexError):
    """Embedding length disagrees with the index dimensionality."""

    def __init__(self, expected: int, got: int):
        super().__init__(
            f"embedding dimension mismatch: expected {expected}, got {got}"
        )
        self.expected = expected
        self.got = got


# =============================================================================
# Embedding Cache
# =============================================================================

class CacheError(RetrievalError):
    """Base exception for embedding cache errors."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class CacheIOError(CacheError):
    """Reading, writing or deleting a cache file failed."""


class CacheSerializationError(CacheError):
    """A cache file could not be encoded or decoded."""


# =============================================================================
# Embeddings / Configuration
# =============================================================================

class EmbeddingProviderError(RetrievalError):
    """The embedding provider returned an unusable response."""

    def __init__(self, message: str, provider: str = "unknown"):
        super().__init__(message)
        self.provider = provider


class ConfigError(RetrievalError):
    """Configuration could not be loaded or failed validation."""
