"""Tests for SearchIndexer."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from quantomdocs.content.sandbox import PathSandbox
from quantomdocs.content.storage import FileSystemStorage
from quantomdocs.content.tree import ContentTreeBuilder
from quantomdocs.errors import IndexBuildError, PathTraversalError
from quantomdocs.index.indexer import IndexStats, SearchIndexer, is_indexable


def make_indexer(root: Path, **kwargs) -> SearchIndexer:
    storage = FileSystemStorage()
    return SearchIndexer(storage, PathSandbox(root), ContentTreeBuilder(storage), **kwargs)


def by_path(indexer: SearchIndexer) -> dict:
    return {doc.path: doc for doc in indexer.documents}


class DenyingStorage(FileSystemStorage):
    """Storage that refuses to read one path."""

    def __init__(self, denied: Path) -> None:
        super().__init__()
        self.denied = denied

    def read_text(self, path: Path) -> str:
        if Path(path) == self.denied:
            raise PermissionError(f"Permission denied: {path}")
        return super().read_text(path)


class TestIsIndexable:
    """Test which paths become search documents."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("quantom/FAQ.md", True),
            ("quantom/Guides/Plugins.mdx", True),
            ("quantom/Guides/index.md", False),
            ("quantom/index.mdx", False),
            ("quantom/.draft.md", False),
            ("quantom/logo.png", False),
            ("README.md", False),
        ],
    )
    def test_is_indexable(self, path: str, expected: bool) -> None:
        """Only content files inside a product are indexed."""
        assert is_indexable(path) is expected


class TestIndexStats:
    """Test IndexStats serialization."""

    def test_defaults(self) -> None:
        """An empty index reports nothing."""
        assert IndexStats().to_dict() == {
            "totalDocuments": 0,
            "indexed": False,
            "products": [],
            "builtAt": None,
        }


class TestBuildFull:
    """Test full index builds."""

    def test_indexes_every_content_file(self, content_root: Path) -> None:
        """Should index each markdown file of each product exactly once."""
        indexer = make_indexer(content_root)
        assert indexer.build_full() == 5
        assert sorted(by_path(indexer)) == [
            "other/Intro.md",
            "quantom/01-Getting-Started/Quick-Start.md",
            "quantom/02-Guides/Advanced/Plugins.mdx",
            "quantom/02-Guides/Configuration.md",
            "quantom/FAQ.md",
        ]
        assert indexer.is_ready

    def test_document_fields(self, content_root: Path) -> None:
        """Should derive title, category and slug from the file."""
        indexer = make_indexer(content_root)
        indexer.build_full()
        docs = by_path(indexer)

        quick_start = docs["quantom/01-Getting-Started/Quick-Start.md"]
        assert quick_start.title == "Quick Start"
        assert quick_start.category == "01-Getting-Started"
        assert quick_start.product_id == "quantom"
        assert quick_start.url_slug == "quick-start"
        assert quick_start.file_type == "md"
        assert "quantom init" not in quick_start.content
        assert "Install the Quantom server" in quick_start.content

        plugins = docs["quantom/02-Guides/Advanced/Plugins.mdx"]
        assert plugins.category == "Advanced"
        assert plugins.file_type == "mdx"
        assert "<Callout>" not in plugins.content

    def test_title_falls_back_to_clean_name(self, content_root: Path) -> None:
        """Files without an H1 use their name as the title."""
        indexer = make_indexer(content_root)
        indexer.build_full()
        faq = by_path(indexer)["quantom/FAQ.md"]
        assert faq.title == "FAQ"
        assert faq.category == "quantom"

    def test_snippet_is_capped(self, content_root: Path) -> None:
        """Content snippets never exceed the configured length."""
        indexer = make_indexer(content_root, snippet_chars=10)
        indexer.build_full()
        assert all(len(doc.content) <= 10 for doc in indexer.documents)

    def test_rebuild_replaces_documents(self, content_root: Path) -> None:
        """Building twice does not duplicate documents."""
        indexer = make_indexer(content_root)
        indexer.build_full()
        (content_root / "quantom" / "FAQ.md").unlink()
        assert indexer.build_full() == 4
        assert len(indexer.documents) == 4

    def test_rebuild_is_idempotent(self, content_root: Path) -> None:
        """Rebuilding unchanged content yields identical documents."""
        indexer = make_indexer(content_root)
        indexer.build_full()
        first = sorted(indexer.documents, key=lambda doc: doc.path)
        indexer.build_full()
        assert sorted(indexer.documents, key=lambda doc: doc.path) == first
        assert len(first) == 5

    def test_non_utf8_file_is_indexed(self, content_root: Path) -> None:
        """Undecodable bytes are replaced rather than dropping the file."""
        (content_root / "quantom" / "Legacy.md").write_bytes(b"# Caf\xe9 notes\n")
        indexer = make_indexer(content_root)
        assert indexer.build_full() == 6
        assert by_path(indexer)["quantom/Legacy.md"].title == "Caf\ufffd notes"

    def test_unreadable_files_are_summarized(
        self, content_root: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Files that cannot be read are skipped and reported once per product."""
        broken = content_root / "quantom" / "Broken.md"
        broken.write_text("# Broken\n", encoding="utf-8")
        storage = DenyingStorage(broken)
        indexer = SearchIndexer(storage, PathSandbox(content_root), ContentTreeBuilder(storage))
        with caplog.at_level(logging.WARNING, logger="quantomdocs.index.indexer"):
            assert indexer.build_full() == 5
        assert "Skipped 1 unreadable file(s) in product: quantom" in caplog.text


    def test_bad_product_does_not_abort_build(
        self, content_root: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A product that cannot be resolved is logged and skipped."""
        (content_root / "bad..name").mkdir()
        (content_root / "bad..name" / "Page.md").write_text("# Page", encoding="utf-8")
        indexer = make_indexer(content_root)
        with caplog.at_level(logging.ERROR, logger="quantomdocs.index.indexer"):
            assert indexer.build_full() == 5
        assert "Error building index for bad..name" in caplog.text

    def test_empty_root(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        """An empty content root yields an empty but ready index."""
        indexer = make_indexer(tmp_path)
        with caplog.at_level(logging.WARNING, logger="quantomdocs.index.indexer"):
            assert indexer.build_full() == 0
        assert indexer.is_ready
        assert "no documents indexed" in caplog.text

    def test_missing_root_raises(self, tmp_path: Path) -> None:
        """A root that cannot be listed is an IndexBuildError."""
        indexer = make_indexer(tmp_path / "missing")
        with pytest.raises(IndexBuildError):
            indexer.build_full()
        assert not indexer.is_ready


class TestIncrementalUpdates:
    """Test single-path index updates."""

    @pytest.fixture
    def indexer(self, content_root: Path) -> SearchIndexer:
        indexer = make_indexer(content_root)
        indexer.build_full()
        return indexer

    def test_update_existing(self, indexer: SearchIndexer, content_root: Path) -> None:
        """Re-reads a changed file in place."""
        (content_root / "quantom" / "FAQ.md").write_text("# Licensing FAQ\n", encoding="utf-8")
        indexer.update_one("quantom/FAQ.md")
        assert len(indexer.documents) == 5
        assert by_path(indexer)["quantom/FAQ.md"].title == "Licensing FAQ"

    def test_update_new_file(self, indexer: SearchIndexer, content_root: Path) -> None:
        """Adds a file created after the build."""
        (content_root / "quantom" / "New.md").write_text("# New Page\n", encoding="utf-8")
        indexer.update_one("quantom/New.md")
        assert len(indexer.documents) == 6

    def test_update_deleted_file(
        self, indexer: SearchIndexer, content_root: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A vanished file simply leaves the index."""
        (content_root / "quantom" / "FAQ.md").unlink()
        with caplog.at_level(logging.INFO, logger="quantomdocs.index.indexer"):
            indexer.update_one("quantom/FAQ.md")
        assert "quantom/FAQ.md" not in by_path(indexer)
        assert "File no longer exists or is inaccessible" in caplog.text

    def test_update_ignores_non_content(self, indexer: SearchIndexer) -> None:
        """Index pages and foreign files are never added."""
        indexer.update_one("quantom/01-Getting-Started/index.md")
        indexer.update_one("quantom/logo.png")
        assert len(indexer.documents) == 5

    def test_update_rejects_traversal(self, indexer: SearchIndexer) -> None:
        """Paths escaping the root are refused."""
        with pytest.raises(PathTraversalError):
            indexer.update_one("../outside.md")

    def test_remove_file(self, indexer: SearchIndexer) -> None:
        """Removes one document."""
        assert indexer.remove("quantom/FAQ.md") == 1
        assert len(indexer.documents) == 4

    def test_remove_directory(self, indexer: SearchIndexer) -> None:
        """Removes every document below a directory."""
        assert indexer.remove("quantom/02-Guides") == 2
        assert sorted(by_path(indexer)) == [
            "other/Intro.md",
            "quantom/01-Getting-Started/Quick-Start.md",
            "quantom/FAQ.md",
        ]

    def test_remove_prefix_is_path_aware(self, indexer: SearchIndexer) -> None:
        """A sibling sharing a name prefix is not removed."""
        assert indexer.remove("quantom/02-Guid") == 0
        assert len(indexer.documents) == 5


class TestStats:
    """Test index statistics."""

    def test_before_build(self, content_root: Path) -> None:
        """Nothing is reported before the first build."""
        stats = make_indexer(content_root).stats()
        assert stats.total_documents == 0
        assert stats.indexed is False
        assert stats.built_at is None

    def test_after_build(self, content_root: Path) -> None:
        """Reports documents, products and build time."""
        indexer = make_indexer(content_root)
        indexer.build_full()
        stats = indexer.stats()
        assert stats.total_documents == 5
        assert stats.indexed is True
        assert stats.products == ["other", "quantom"]
        assert stats.built_at is not None
        assert stats.to_dict()["builtAt"] == stats.built_at.isoformat()

    def test_list_products_skips_hidden(self, content_root: Path) -> None:
        """Hidden directories and files are not products."""
        (content_root / ".git").mkdir()
        (content_root / "notes.md").write_text("x", encoding="utf-8")
        assert make_indexer(content_root).list_products() == ["other", "quantom"]
