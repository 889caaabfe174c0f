"""
Core infrastructure for the retrieval engine: errors, configuration,
logging and the two-tier embedding cache.
"""

from .errors import (
    RetrievalError,
    VectorIndexError,
    EmptyEmbeddingsError,
    DimensionMismatchError,
    CacheError,
    CacheIOError,
    CacheSerializationError,
    EmbeddingProviderError,
    ConfigError,
)
from .config import RetrievalConfig, SearchConfig, CacheConfig, LoggingConfig, load_config
from .embedding_cache import EmbeddingCache, CacheEntry, HotStore, DurableStore

__all__ = [
    'RetrievalError',
    'VectorIndexError',
    'EmptyEmbeddingsError',
    'DimensionMismatchError',
    'CacheError',
    'CacheIOError',
    'CacheSerializationError',
    'EmbeddingProviderError',
    'ConfigError',
    'RetrievalConfig',
    'SearchConfig',
    'CacheConfig',
    'LoggingConfig',
    'load_config',
    'EmbeddingCache',
    'CacheEntry',
    'HotStore',
    'DurableStore',
]
