"""
Embedding Providers

The retrieval engine does not produce embeddings itself. It talks to an
``EmbeddingProvider`` and keeps results in an EmbeddingCache so repeated
texts never hit the provider twice.

Features:
- Provider interface (``embed(texts) -> vectors``)
- Local sentence-transformers provider, loaded lazily
- Cache-through embedder with retry on transient provider failures

Usage:
    from core.embedding_cache import EmbeddingCache
    from search.embeddings import EmbeddingEngine, CachedEmbedder

    embedder = CachedEmbedder(EmbeddingEngine(), EmbeddingCache(cache_dir))
    vectors = embedder.embed(["first text", "second text"])
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

import numpy as np
from tenacity import (
    Retrying,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from core.embedding_cache import EmbeddingCache
from core.errors import EmbeddingProviderError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = 'all-MiniLM-L6-v2'

# Failures worth retrying; anything else is a caller or provider bug.
TRANSIENT_ERRORS = (ConnectionError, TimeoutError)

# Lazy import for sentence-transformers
_model = None
_model_name = None


def get_model(model_name: str = DEFAULT_MODEL):
    """
    Get or create the sentence-transformers model.

    Uses lazy loading to avoid import cost until needed.
    """
    global _model, _model_name

    if _model is not None and _model_name == model_name:
        return _model

    try:
        from sentence_transformers import SentenceTransformer
    except ImportError:
        raise ImportError(
            "sentence-transformers not installed. "
            "Install with: pip install 'docretrieval[embeddings]'"
        )

    logger.info(f"Loading embedding model: {model_name}")
    _model = SentenceTransformer(model_name)
    _model_name = model_name
    return _model


# =============================================================================
# Providers
# =============================================================================

class EmbeddingProvider(ABC):
    """Anything that turns texts into dense vectors."""

    model_name: str = "unknown"

    @abstractmethod
    def embed(self, texts: Sequence[str]) -> List[Sequence[float]]:
        """Embed each text, returning one vector per input in order."""


class EmbeddingEngine(EmbeddingProvider):
    """
    Generate embeddings locally with sentence-transformers.

    No API calls; the model is downloaded once and loaded on first use.
    """

    def __init__(self, model_name: str = DEFAULT_MODEL, batch_size: int = 32):
        """
        Initialize the embedding engine.

        Args:
            model_name: Name of the sentence-transformers model to use.
                        Default is 'all-MiniLM-L6-v2' (fast, good quality).
            batch_size: Batch size for encoding
        """
        self.model_name = model_name
        self.batch_size = batch_size
        self._model = None

    @property
    def model(self):
        """Lazy load the model."""
        if self._model is None:
            self._model = get_model(self.model_name)
        return self._model

    @property
    def dimension(self) -> int:
        """Get the embedding dimension."""
        return self.model.get_sentence_embedding_dimension()

    def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        if not texts:
            return []
        vectors = self.model.encode(
            list(texts),
            batch_size=self.batch_size,
            show_progress_bar=False,
            convert_to_numpy=True
        )
        return [np.asarray(v, dtype=np.float32) for v in vectors]


# =============================================================================
# Cache-Through Embedder
# =============================================================================

class CachedEmbedder:
    """
    Serve embeddings from an EmbeddingCache, calling the provider on misses.

    Misses from one ``embed`` call are sent to the provider as a single
    batch. Connection and timeout errors are retried with exponential
    backoff; other errors propagate immediately.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        cache: EmbeddingCache,
        model_name: Optional[str] = None,
        max_attempts: int = 3,
        backoff_seconds: float = 1.0
    ):
        """
        Args:
            provider: Embedding provider used on cache misses
            cache: Embedding cache
            model_name: Cache key model name (default: provider.model_name)
            max_attempts: Provider attempts before giving up
            backoff_seconds: Base delay for exponential backoff
        """
        self.provider = provider
        self.cache = cache
        self.model_name = model_name or getattr(provider, 'model_name', 'unknown')
        self._retrying = Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=backoff_seconds, min=backoff_seconds, max=10),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True
        )
        self.provider_calls = 0

    def embed(self, texts: Sequence[str]) -> List[np.ndarray]:
        """
        Embed texts, using cached vectors where available.

        Returns:
            One float32 vector per input text, in input order

        Raises:
            EmbeddingProviderError: If the provider returns the wrong number
                                    of vectors
        """
        results: List[Optional[np.ndarray]] = [None] * len(texts)
        missing: List[int] = []

        for i, text in enumerate(texts):
            cached = self.cache.get(text, self.model_name)
            if cached is None:
                missing.append(i)
            else:
                results[i] = np.asarray(cached, dtype=np.float32)

        if missing:
            # Duplicate texts within one call are embedded once
            unique_texts = list(dict.fromkeys(texts[i] for i in missing))
            logger.debug(
                f"Embedding cache miss for {len(unique_texts)} of {len(texts)} texts"
            )
            vectors = self._call_provider(unique_texts)

            by_text = {}
            for text, vector in zip(unique_texts, vectors):
                vec = np.asarray(vector, dtype=np.float32)
                self.cache.put(text, self.model_name, vec.tolist())
                by_text[text] = vec

            for i in missing:
                results[i] = by_text[texts[i]]

        return results

    def embed_one(self, text: str) -> np.ndarray:
        return self.embed([text])[0]

    def _call_provider(self, texts: List[str]) -> List[Sequence[float]]:
        self.provider_calls += 1
        vectors = self._retrying(self.provider.embed, texts)
        if len(vectors) != len(texts):
            raise EmbeddingProviderError(
                f"Provider returned {len(vectors)} embeddings for {len(texts)} texts",
                provider=self.model_name
            )
        return vectors
