"""Tests for the Searcher."""

from __future__ import annotations

import logging

import pytest

from quantomdocs.index.search import Searcher, SearchResult
from quantomdocs.runtime import DocsRuntime


class TestSearcher:
    """Test queries against the sample index."""

    @pytest.mark.parametrize("query", ["", "   ", "\n\t"])
    def test_blank_query(self, indexed_runtime: DocsRuntime, query: str) -> None:
        """Blank queries return no results."""
        assert indexed_runtime.searcher.search(query) == []

    def test_not_ready(self, runtime: DocsRuntime, caplog: pytest.LogCaptureFixture) -> None:
        """Searching before any build returns nothing and warns."""
        with caplog.at_level(logging.WARNING, logger="quantomdocs.index.search"):
            assert Searcher(runtime.indexer).search("quick start") == []
        assert "Search index not initialized" in caplog.text

    def test_title_match_ranks_first(self, indexed_runtime: DocsRuntime) -> None:
        """The page titled with the query comes first."""
        results = indexed_runtime.searcher.search("Quick Start")
        assert results
        top = results[0]
        assert top.title == "Quick Start"
        assert top.path == "quantom/01-Getting-Started/Quick-Start.md"
        assert top.url_slug == "quick-start"
        assert top.product_id == "quantom"

    def test_scores_are_ascending(self, indexed_runtime: DocsRuntime) -> None:
        """Results are ordered best first."""
        results = indexed_runtime.searcher.search("server")
        scores = [result.score for result in results]
        assert scores == sorted(scores)

    def test_typo_still_matches(self, indexed_runtime: DocsRuntime) -> None:
        """A misspelled query finds the intended page."""
        results = indexed_runtime.searcher.search("configuraton")
        assert results[0].title == "Configuration"

    def test_product_filter(self, indexed_runtime: DocsRuntime) -> None:
        """Only results of the requested product are returned."""
        results = indexed_runtime.searcher.search("intro", product="other")
        assert results
        assert all(result.product_id == "other" for result in results)
        assert indexed_runtime.searcher.search("intro", product="missing") == []

    def test_limit(self, indexed_runtime: DocsRuntime) -> None:
        """At most ``limit`` results are returned."""
        assert len(indexed_runtime.searcher.search("server")) >= 2
        assert len(indexed_runtime.searcher.search("server", limit=1)) == 1
        assert indexed_runtime.searcher.search("server", limit=0) == []

    def test_reflects_incremental_update(self, indexed_runtime: DocsRuntime) -> None:
        """New files become searchable after update_one."""
        root = indexed_runtime.sandbox.root
        (root / "other" / "Webhooks.md").write_text("# Webhooks\n\nEvent delivery.\n", encoding="utf-8")
        assert indexed_runtime.searcher.search("webhooks") == []
        indexed_runtime.indexer.update_one("other/Webhooks.md")
        assert indexed_runtime.searcher.search("webhooks")[0].title == "Webhooks"


class TestSearchResult:
    """Test result serialization."""

    def test_to_dict(self) -> None:
        """Serializes with camelCase keys."""
        result = SearchResult(
            score=0.1,
            title="Intro",
            content="text",
            path="other/Intro.md",
            url_slug="intro",
            file_name="Intro.md",
            file_type="md",
            category="other",
            product_id="other",
        )
        assert result.to_dict() == {
            "score": 0.1,
            "title": "Intro",
            "content": "text",
            "path": "other/Intro.md",
            "urlSlug": "intro",
            "fileName": "Intro.md",
            "fileType": "md",
            "category": "other",
            "productId": "other",
        }
