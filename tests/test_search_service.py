"""
Tests for the Lexical Search Service
"""

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.config import SearchConfig
from search.service import SearchService, SearchResult, format_results
from tests.fixtures.sample_data import DOCUMENTS


@pytest.fixture
def service():
    """Service loaded with the sample corpus."""
    svc = SearchService()
    for path, content in DOCUMENTS.items():
        svc.index_document(path, content)
    return svc


class TestIndexing:
    """Tests for document indexing."""

    def test_doc_count(self, service):
        assert service.doc_count() == len(DOCUMENTS)

    def test_reindex_does_not_duplicate(self, service):
        service.index_document("docs/react_hooks.md", "Vue composition API")

        assert service.doc_count() == len(DOCUMENTS)
        assert service.search("hooks", top_k=5) == []
        assert [r.path for r in service.search("composition", top_k=5)] == [
            "docs/react_hooks.md"
        ]

    def test_clear(self, service):
        service.clear()

        assert service.doc_count() == 0
        assert service.search("python", top_k=5) == []


class TestSearch:
    """Tests for ranked search with snippets."""

    def test_finds_relevant_document(self, service):
        results = service.search("aiohttp asyncio", top_k=3)

        assert results[0].path == "docs/async_http.md"
        assert results[0].score > 0
        assert isinstance(results[0], SearchResult)

    def test_no_results(self, service):
        assert service.search("kubernetes", top_k=5) == []

    def test_snippet_is_prefix(self, service):
        result = service.search("docker", top_k=1)[0]

        assert result.snippet == DOCUMENTS["docs/docker_compose.md"][:200]

    def test_snippet_truncated_by_characters(self):
        svc = SearchService()
        content = "ünïcödé " * 50
        svc.index_document("long.txt", content)

        result = svc.search("ünïcödé", top_k=1)[0]

        assert len(result.snippet) == 200
        assert result.snippet == content[:200]

    def test_missing_content_uses_placeholder(self, service):
        del service.documents["docs/sql_indexes.md"]

        result = service.search("composite", top_k=1)[0]

        assert result.path == "docs/sql_indexes.md"
        assert result.snippet == "..."

    def test_default_top_k(self):
        svc = SearchService(default_top_k=2)
        for i in range(5):
            svc.index_document(f"doc{i}", "shared words " + "pad " * i)

        assert len(svc.search("shared")) == 2

    def test_from_config(self):
        svc = SearchService.from_config(SearchConfig(snippet_chars=5, max_results=1))
        svc.index_document("a", "quick brown fox")
        svc.index_document("b", "quick fox")

        results = svc.search("quick")
        assert len(results) == 1
        assert len(results[0].snippet) == 5


class TestFormatResults:
    """Tests for plain-text result rendering."""

    def test_no_results(self):
        assert format_results([]) == "No results found."

    def test_formats_lines(self):
        results = [
            SearchResult(path="a.txt", score=1.234, snippet="alpha"),
            SearchResult(path="b.txt", score=0.5, snippet="beta"),
        ]

        assert format_results(results) == (
            "a.txt (score: 1.23): alpha\n"
            "b.txt (score: 0.50): beta"
        )

    def test_to_dict(self):
        result = SearchResult(path="a.txt", score=1.0, snippet="s")

        assert result.to_dict() == {'path': 'a.txt', 'score': 1.0, 'snippet': 's'}
