"""
Tests for Embedding Providers and the Cache-Through Embedder

Note: These tests use fake providers and mocks; no model is downloaded.
"""

import pytest
import numpy as np
from unittest.mock import Mock, patch
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.embedding_cache import EmbeddingCache
from core.errors import EmbeddingProviderError
from search.embeddings import CachedEmbedder, EmbeddingEngine, EmbeddingProvider
from tests.fixtures.sample_data import KeywordEmbeddingProvider


@pytest.fixture
def provider():
    return KeywordEmbeddingProvider()


@pytest.fixture
def cache(tmp_path):
    return EmbeddingCache(tmp_path / "embeddings")


@pytest.fixture
def embedder(provider, cache):
    return CachedEmbedder(provider, cache, backoff_seconds=0)


class TestCachedEmbedder:
    """Tests for cache-through embedding."""

    def test_embeds_in_input_order(self, embedder):
        vectors = embedder.embed(["python python", "react hooks"])

        assert len(vectors) == 2
        assert vectors[0][0] == 2.0
        assert vectors[1][1] == 1.0
        assert all(v.dtype == np.float32 for v in vectors)

    def test_second_call_served_from_cache(self, embedder, provider):
        embedder.embed(["python"])
        embedder.embed(["python"])

        assert provider.calls == [["python"]]
        assert embedder.provider_calls == 1

    def test_only_misses_sent_to_provider(self, embedder, provider):
        embedder.embed(["python"])
        embedder.embed(["python", "docker", "react"])

        assert provider.calls[-1] == ["docker", "react"]

    def test_duplicate_texts_embedded_once(self, embedder, provider):
        vectors = embedder.embed(["http", "http"])

        assert provider.calls == [["http"]]
        np.testing.assert_array_equal(vectors[0], vectors[1])

    def test_results_written_to_cache(self, embedder, cache, provider):
        embedder.embed(["docker docker"])

        cached = cache.get("docker docker", provider.model_name)
        assert cached[3] == 2.0

    def test_cache_survives_new_embedder(self, tmp_path, provider):
        first = CachedEmbedder(provider, EmbeddingCache(tmp_path), backoff_seconds=0)
        first.embed(["test index"])

        second_provider = KeywordEmbeddingProvider()
        second = CachedEmbedder(second_provider, EmbeddingCache(tmp_path), backoff_seconds=0)
        second.embed(["test index"])

        assert second_provider.calls == []

    def test_model_name_override(self, provider, cache):
        embedder = CachedEmbedder(provider, cache, model_name="other-model", backoff_seconds=0)
        embedder.embed(["python"])

        assert cache.get("python", "other-model") is not None
        assert cache.get("python", provider.model_name) is None

    def test_embed_one(self, embedder):
        vec = embedder.embed_one("database index")

        assert vec.shape == (8,)

    def test_empty_input(self, embedder, provider):
        assert embedder.embed([]) == []
        assert provider.calls == []


class TestProviderFailures:
    """Tests for retry and error propagation."""

    def test_retries_transient_errors(self, cache):
        provider = Mock(spec=EmbeddingProvider)
        provider.model_name = "mock"
        provider.embed.side_effect = [ConnectionError("reset"), [[1.0, 2.0]]]

        embedder = CachedEmbedder(provider, cache, backoff_seconds=0)
        vectors = embedder.embed(["text"])

        assert provider.embed.call_count == 2
        assert vectors[0].tolist() == [1.0, 2.0]

    def test_gives_up_after_max_attempts(self, cache):
        provider = Mock(spec=EmbeddingProvider)
        provider.model_name = "mock"
        provider.embed.side_effect = TimeoutError("slow")

        embedder = CachedEmbedder(provider, cache, max_attempts=3, backoff_seconds=0)

        with pytest.raises(TimeoutError):
            embedder.embed(["text"])
        assert provider.embed.call_count == 3

    def test_non_transient_errors_not_retried(self, cache):
        provider = Mock(spec=EmbeddingProvider)
        provider.model_name = "mock"
        provider.embed.side_effect = ValueError("bad input")

        embedder = CachedEmbedder(provider, cache, backoff_seconds=0)

        with pytest.raises(ValueError):
            embedder.embed(["text"])
        assert provider.embed.call_count == 1

    def test_wrong_vector_count(self, cache):
        provider = Mock(spec=EmbeddingProvider)
        provider.model_name = "mock"
        provider.embed.return_value = [[1.0]]

        embedder = CachedEmbedder(provider, cache, backoff_seconds=0)

        with pytest.raises(EmbeddingProviderError):
            embedder.embed(["one", "two"])
        assert cache.get("one", "mock") is None


class TestEmbeddingEngine:
    """Tests for the sentence-transformers provider (model mocked)."""

    def test_model_loaded_lazily(self):
        with patch('search.embeddings.get_model') as get_model:
            engine = EmbeddingEngine('some-model')
            get_model.assert_not_called()

            engine.model
            get_model.assert_called_once_with('some-model')

    def test_embed_uses_model(self):
        model = Mock()
        model.encode.return_value = np.array([[0.1, 0.2], [0.3, 0.4]])

        with patch('search.embeddings.get_model', return_value=model):
            engine = EmbeddingEngine()
            vectors = engine.embed(["a", "b"])

        assert len(vectors) == 2
        assert vectors[1].dtype == np.float32
        model.encode.assert_called_once()
        assert model.encode.call_args.args[0] == ["a", "b"]

    def test_embed_empty(self):
        assert EmbeddingEngine().embed([]) == []

    def test_is_provider(self):
        assert isinstance(EmbeddingEngine(), EmbeddingProvider)
